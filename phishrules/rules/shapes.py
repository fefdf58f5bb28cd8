"""Rule-set shape classification.

Rule documents arrive in several incompatible layouts. They are resolved
once into a ``RuleSetInput`` tagged with a ``RuleSetShape`` so the
normalizer and the synthesizer never re-sniff the raw JSON.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class RuleSetShape(str, Enum):
    """Recognized rule-set layouts, in dispatch order."""

    ARRAY = "array"
    INDICATORS_WRAPPER = "indicators_wrapper"
    LEGACY_WRAPPER = "legacy_wrapper"
    SINGLE_RULE = "single_rule"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class RuleSetInput:
    """A rule-set document resolved to its shape."""

    shape: RuleSetShape
    candidates: tuple = ()
    legacy_rules: tuple = ()
    blocking_rules: Any = field(default_factory=dict)

    @property
    def is_legacy(self) -> bool:
        return self.shape is RuleSetShape.LEGACY_WRAPPER


def classify_rule_set(value: Any) -> RuleSetInput:
    """Resolve decoded JSON to a ``RuleSetInput``; first matching shape wins."""
    if isinstance(value, list):
        return RuleSetInput(shape=RuleSetShape.ARRAY, candidates=tuple(value))

    if not isinstance(value, Mapping):
        return RuleSetInput(shape=RuleSetShape.UNRECOGNIZED)

    blocking_rules = copy.deepcopy(value.get("blocking_rules") or {})

    indicators = value.get("phishing_indicators")
    if isinstance(indicators, list):
        return RuleSetInput(
            shape=RuleSetShape.INDICATORS_WRAPPER,
            candidates=tuple(indicators),
            blocking_rules=blocking_rules,
        )

    rules = value.get("rules")
    if isinstance(rules, list):
        return RuleSetInput(
            shape=RuleSetShape.LEGACY_WRAPPER,
            candidates=tuple(rules),
            legacy_rules=tuple(rules),
            blocking_rules=blocking_rules,
        )

    if value.get("id") and value.get("type"):
        return RuleSetInput(shape=RuleSetShape.SINGLE_RULE, candidates=(value,))

    return RuleSetInput(shape=RuleSetShape.UNRECOGNIZED)
