"""Rule data models."""

from __future__ import annotations

import copy
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass
class Indicator:
    """A canonical phishing indicator."""

    id: str
    pattern: str
    flags: str = "gi"
    severity: str = "low"
    description: str = "Custom rule"
    confidence: float = 0.9
    action: str = "monitor"
    category: str = "general"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "flags": self.flags,
            "severity": self.severity,
            "description": self.description,
            "confidence": self.confidence,
            "action": self.action,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Indicator":
        return cls(
            id=data["id"],
            pattern=data["pattern"],
            flags=data.get("flags", "gi"),
            severity=data.get("severity", "low"),
            description=data.get("description", "Custom rule"),
            confidence=data.get("confidence", 0.9),
            action=data.get("action", "monitor"),
            category=data.get("category", "general"),
        )


@dataclass(frozen=True)
class LegacyRule:
    """Read-only view over a weighted-condition rule."""

    id: Optional[str]
    type: Optional[str]
    weight: float = 0
    condition: Mapping[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LegacyRule":
        weight = data.get("weight")
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            weight = 0
        condition = data.get("condition")
        return cls(
            id=data.get("id") or None,
            type=data.get("type") or None,
            weight=weight,
            condition=copy.deepcopy(condition) if isinstance(condition, Mapping) else {},
            description=data.get("description") or None,
        )


@dataclass
class CanonicalRuleSet:
    """Rule set in the shape the evaluation engine consumes."""

    phishing_indicators: list[Indicator] = field(default_factory=list)
    blocking_rules: Any = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.phishing_indicators)

    def to_dict(self) -> dict:
        return {
            "phishing_indicators": [ind.to_dict() for ind in self.phishing_indicators],
            "blocking_rules": copy.deepcopy(self.blocking_rules),
        }

    def stats(self) -> dict:
        """Counts per severity and per category."""
        severities = Counter(ind.severity for ind in self.phishing_indicators)
        categories = Counter(ind.category for ind in self.phishing_indicators)
        blocking = self.blocking_rules
        return {
            "total": len(self.phishing_indicators),
            "critical": severities.get("critical", 0),
            "high": severities.get("high", 0),
            "medium": severities.get("medium", 0),
            "low": severities.get("low", 0),
            "categories": dict(sorted(categories.items())),
            "blocking_rules": len(blocking) if isinstance(blocking, (list, dict)) else 0,
        }
