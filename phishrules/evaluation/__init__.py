"""Evaluation modules for phishrules."""

from .engine import EvaluationEngine, RegexEvaluationEngine
from .models import EvaluationOutcome, EvaluationRequest, EvaluationResult, Threat
from .orchestrator import EvaluationOrchestrator, PreparedRuleSet, prepare_rule_set

__all__ = [
    "EvaluationEngine",
    "EvaluationOrchestrator",
    "EvaluationOutcome",
    "EvaluationRequest",
    "EvaluationResult",
    "PreparedRuleSet",
    "RegexEvaluationEngine",
    "Threat",
    "prepare_rule_set",
]
