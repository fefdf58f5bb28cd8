"""Report rendering for phishrules."""

from .ranking import clean_description, rank_threats
from .renderer import export_report, render_report, render_validation

__all__ = [
    "clean_description",
    "export_report",
    "rank_threats",
    "render_report",
    "render_validation",
]
