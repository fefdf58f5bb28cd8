"""Threat ranking and description cleanup."""

from __future__ import annotations

import re
from typing import Iterable

from ..constants import severity_rank
from ..evaluation.models import Threat

MATCH_DETAILS_LIMIT = 180

_PAGE_SOURCE_RE = re.compile(r"\bpage\s+source\b", re.I)
_MULTISPACE_RE = re.compile(r"\s{2,}")


def rank_threats(threats: Iterable[Threat]) -> list[Threat]:
    """Most severe first; ties keep their input order."""
    return sorted(threats, key=lambda t: -severity_rank(t.severity))


def clean_description(text: str | None) -> str:
    """Drop the "page source" noise phrase and collapse whitespace runs."""
    if not text:
        return ""
    cleaned = _PAGE_SOURCE_RE.sub("", text)
    return _MULTISPACE_RE.sub(" ", cleaned).strip()


def truncate_match(text: str | None, limit: int = MATCH_DETAILS_LIMIT) -> str:
    if not text:
        return ""
    return text[:limit]
