"""Evaluation data models.

Results keep the engine's camelCase wire keys on ``to_dict``. Keys the
models do not know about are carried in ``extra`` so a result survives
``from_dict``/``to_dict`` unchanged.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..rules.models import CanonicalRuleSet


def _split(data: Mapping[str, Any], known: tuple[str, ...]) -> dict:
    return {k: copy.deepcopy(v) for k, v in data.items() if k not in known}


def _mapping(data: Any, name: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{name} must be an object, got {type(data).__name__}")
    return data


def _sequence(data: Any, name: str) -> list:
    if data is None:
        return []
    if not isinstance(data, (list, tuple)):
        raise TypeError(f"{name} must be a list, got {type(data).__name__}")
    return list(data)


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class EvaluationRequest:
    """Input to the evaluation engine."""

    rules_json: CanonicalRuleSet
    page_source: str
    url: str

    def to_dict(self) -> dict:
        return {
            "rulesJson": self.rules_json.to_dict(),
            "pageSource": self.page_source,
            "url": self.url,
        }


@dataclass(frozen=True)
class Threat:
    """A matched indicator as reported by the engine."""

    _KEYS = ("id", "severity", "action", "category", "description", "matchDetails")

    id: str
    severity: str = ""
    action: str = ""
    category: str = ""
    description: str = ""
    match_details: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Threat":
        match_details = data.get("matchDetails")
        return cls(
            id=str(data.get("id") or ""),
            severity=str(data.get("severity") or ""),
            action=str(data.get("action") or ""),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            match_details=None if match_details is None else str(match_details),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "severity": self.severity,
            "action": self.action,
            "category": self.category,
            "description": self.description,
        }
        if self.match_details is not None:
            data["matchDetails"] = self.match_details
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class ThreatSummary:
    """Threat counts per severity."""

    _KEYS = ("totalThreats", "critical", "high", "medium", "low")

    total_threats: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ThreatSummary":
        data = _mapping(data, "summary")
        return cls(
            total_threats=_int(data.get("totalThreats")),
            critical=_int(data.get("critical")),
            high=_int(data.get("high")),
            medium=_int(data.get("medium")),
            low=_int(data.get("low")),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        data = {
            "totalThreats": self.total_threats,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
        }
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class BlockingInfo:
    """Blocking-rule outcome."""

    should_block: bool = False
    reason: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BlockingInfo":
        data = _mapping(data, "blocking")
        reason = data.get("reason")
        return cls(
            should_block=bool(data.get("shouldBlock")),
            reason=None if reason is None else str(reason),
            extra=_split(data, ("shouldBlock", "reason")),
        )

    def to_dict(self) -> dict:
        data: dict = {"shouldBlock": self.should_block}
        if self.reason is not None:
            data["reason"] = self.reason
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class EvaluationResult:
    """Engine output. Treated as immutable once returned."""

    _KEYS = ("finalDecision", "score", "summary", "threats", "blocking", "unsupported")

    final_decision: str = "pass"
    score: float = 0
    summary: ThreatSummary = field(default_factory=ThreatSummary)
    threats: tuple[Threat, ...] = ()
    blocking: BlockingInfo = field(default_factory=BlockingInfo)
    unsupported: tuple[str, ...] = ()
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EvaluationResult":
        score = data.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            score = 0
        return cls(
            final_decision=str(data.get("finalDecision") or ""),
            score=score,
            summary=ThreatSummary.from_dict(data.get("summary")),
            threats=tuple(
                Threat.from_dict(t)
                for t in _sequence(data.get("threats"), "threats")
                if isinstance(t, Mapping)
            ),
            blocking=BlockingInfo.from_dict(data.get("blocking")),
            unsupported=tuple(str(u) for u in _sequence(data.get("unsupported"), "unsupported")),
            extra=_split(data, cls._KEYS),
        )

    def to_dict(self) -> dict:
        data = {
            "finalDecision": self.final_decision,
            "score": self.score,
            "summary": self.summary.to_dict(),
            "threats": [t.to_dict() for t in self.threats],
            "blocking": self.blocking.to_dict(),
            "unsupported": list(self.unsupported),
        }
        data.update(copy.deepcopy(self.extra))
        return data


@dataclass(frozen=True)
class EvaluationOutcome:
    """An engine result plus the elapsed time measured around the call."""

    result: EvaluationResult
    elapsed_ms: int
    request: Optional[EvaluationRequest] = None
