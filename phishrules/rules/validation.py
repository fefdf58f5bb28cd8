"""Non-fatal rule validation.

Findings are returned as data; nothing here raises for a bad rule.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .patterns import regex_flags
from .shapes import RuleSetShape, classify_rule_set


@dataclass(frozen=True)
class ValidationIssue:
    """A problem that makes a rule unusable or ambiguous."""

    message: str
    rule_id: Optional[str] = None


@dataclass(frozen=True)
class ValidationSuggestion:
    """An optional improvement."""

    message: str
    rule_id: Optional[str] = None


@dataclass
class ValidationReport:
    """Issues and suggestions collected over a rule set."""

    shape: RuleSetShape
    rules_checked: int = 0
    issues: list[ValidationIssue] = field(default_factory=list)
    suggestions: list[ValidationSuggestion] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict:
        return {
            "shape": self.shape.value,
            "rulesChecked": self.rules_checked,
            "issues": [i.message for i in self.issues],
            "suggestions": [s.message for s in self.suggestions],
        }


def _label(rule: Mapping[str, Any]) -> str:
    return str(rule.get("id") or "(unknown)")


def _inspect_legacy(rule: Mapping[str, Any], report: ValidationReport) -> None:
    rule_id = rule.get("id") or None
    if not rule_id:
        report.issues.append(ValidationIssue("Rule missing 'id'"))
    if not rule.get("type"):
        report.issues.append(ValidationIssue(f"Rule {_label(rule)} missing 'type'", rule_id))
    weight = rule.get("weight")
    if weight is not None and (isinstance(weight, bool) or not isinstance(weight, (int, float))):
        report.issues.append(ValidationIssue(f"Rule {_label(rule)} weight should be number", rule_id))


def _inspect_pattern(rule: Mapping[str, Any], report: ValidationReport) -> None:
    rule_id = rule.get("id") or None
    pattern = rule.get("pattern") or rule.get("regex")
    if not isinstance(pattern, str) or not pattern.strip():
        if "condition" not in rule:
            report.issues.append(
                ValidationIssue(f"Rule {_label(rule)} has no 'pattern' or 'regex'", rule_id)
            )
        return
    try:
        re.compile(pattern, regex_flags(rule.get("flags")))
    except re.error as exc:
        report.issues.append(ValidationIssue(f"Rule {_label(rule)} pattern does not compile: {exc}", rule_id))


def _inspect(rule: Any, report: ValidationReport, *, legacy: bool) -> None:
    report.rules_checked += 1
    if not isinstance(rule, Mapping):
        report.issues.append(ValidationIssue(f"Rule #{report.rules_checked} is not an object"))
        return

    if legacy:
        _inspect_legacy(rule, report)
    _inspect_pattern(rule, report)

    if not rule.get("description"):
        report.suggestions.append(
            ValidationSuggestion(
                f"Rule {_label(rule)} missing description (optional but recommended)",
                rule.get("id") or None,
            )
        )


def validate_rule_set(value: Any) -> ValidationReport:
    """Inspect every rule of a decoded rule-set document."""
    rule_input = classify_rule_set(value)
    report = ValidationReport(shape=rule_input.shape)

    if rule_input.shape is RuleSetShape.UNRECOGNIZED:
        report.issues.append(
            ValidationIssue("JSON does not look like rule(s) array or object with 'rules'.")
        )
        return report

    legacy = rule_input.shape is not RuleSetShape.INDICATORS_WRAPPER
    for rule in rule_input.candidates:
        _inspect(rule, report, legacy=legacy)

    ids = Counter(
        rule.get("id") for rule in rule_input.candidates if isinstance(rule, Mapping) and rule.get("id")
    )
    for rule_id, count in ids.items():
        if count > 1:
            report.issues.append(ValidationIssue(f"Duplicate rule id {rule_id} ({count} rules)", str(rule_id)))

    return report
