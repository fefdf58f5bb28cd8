"""Indicator synthesis from legacy weighted-condition rules.

Legacy rules carry a ``weight`` and a structured ``condition`` instead of
a regex. When a rule set yields no indicators, each legacy rule with a
``contains``, ``selectors`` or ``domains`` condition is turned into a
literal-match indicator so evaluation is not silently empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .models import Indicator, LegacyRule
from .patterns import escape_literal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisPolicy:
    """Tunable constants for legacy synthesis (weight thresholds are inclusive)."""

    critical_threshold: float = 30
    high_threshold: float = 25
    medium_threshold: float = 15
    confidence: float = 0.75
    flags: str = "i"
    fallback_category: str = "legacy_rule"
    fallback_id: str = "rule"
    fallback_description: str = "Synthesized from rules entry"

    def threshold_errors(self) -> list[str]:
        errors: list[str] = []
        if not (self.critical_threshold >= self.high_threshold >= self.medium_threshold):
            errors.append(
                "Synthesis thresholds must satisfy critical >= high >= medium "
                f"(got {self.critical_threshold}/{self.high_threshold}/{self.medium_threshold})"
            )
        if not 0 <= self.confidence <= 1:
            errors.append(f"Synthesis confidence must be within [0, 1] (got {self.confidence})")
        return errors


DEFAULT_POLICY = SynthesisPolicy()

_ACTION_BY_SEVERITY = {
    "critical": "block",
    "high": "warn",
    "medium": "monitor",
    "low": "monitor",
}


def severity_for_weight(weight: Any, policy: SynthesisPolicy = DEFAULT_POLICY) -> str:
    """Map a legacy weight to a severity (non-numeric weights count as 0)."""
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        weight = 0
    if weight >= policy.critical_threshold:
        return "critical"
    if weight >= policy.high_threshold:
        return "high"
    if weight >= policy.medium_threshold:
        return "medium"
    return "low"


def action_for_severity(severity: str) -> str:
    return _ACTION_BY_SEVERITY.get(severity, "monitor")


def _alternation(items: Any) -> str:
    if not isinstance(items, list) or not items:
        return ""
    return "|".join(escape_literal(str(item)) for item in items)


def pattern_for_condition(condition: Mapping[str, Any]) -> str:
    """Build a pattern from ``contains`` > ``selectors`` > ``domains``; "" if none apply."""
    if not condition:
        return ""
    contains = condition.get("contains")
    if contains:
        return escape_literal(str(contains))
    selectors = _alternation(condition.get("selectors"))
    if selectors:
        return selectors
    return _alternation(condition.get("domains"))


def synthesize_indicators(
    legacy_rules: Iterable[Any],
    policy: Optional[SynthesisPolicy] = None,
) -> list[Indicator]:
    """
    Derive indicators from legacy rules, in input order.

    Rules without a usable condition are skipped. Ids are
    ``syn_<id>_<ordinal>`` where the ordinal counts synthesized rules only,
    so the output depends on nothing but the input.
    """
    policy = policy or DEFAULT_POLICY
    synthesized: list[Indicator] = []

    for raw in legacy_rules or []:
        if not isinstance(raw, Mapping):
            continue
        rule = LegacyRule.from_dict(raw)
        pattern = pattern_for_condition(rule.condition)
        if not pattern:
            continue

        severity = severity_for_weight(rule.weight, policy)
        synthesized.append(
            Indicator(
                id=f"syn_{rule.id or policy.fallback_id}_{len(synthesized) + 1}",
                pattern=pattern,
                flags=policy.flags,
                severity=severity,
                description=rule.description or policy.fallback_description,
                confidence=policy.confidence,
                action=action_for_severity(severity),
                category=rule.type or policy.fallback_category,
            )
        )

    if synthesized:
        logger.info("Synthesized %d indicators from rules[]", len(synthesized))
    return synthesized
