"""Rule schema normalization.

Turns any supported rule-set document into a ``CanonicalRuleSet``. Each
raw rule that carries a ``pattern`` or ``regex`` becomes an ``Indicator``
with the missing fields filled from ``NormalizationDefaults``.
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Union

from ..errors import MalformedJsonError, UnrecognizedSchemaError
from .models import CanonicalRuleSet, Indicator
from .shapes import RuleSetInput, RuleSetShape, classify_rule_set

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class NormalizationDefaults:
    """Values used when a raw rule leaves a field empty."""

    flags: str = "gi"
    severity: str = "low"
    description: str = "Custom rule"
    confidence: float = 0.9
    action: str = "monitor"
    category: str = "general"


class IdGenerator(Protocol):
    """Strategy producing ids for rules that arrive without one."""

    def next_id(self) -> str:  # pragma: no cover - interface
        ...


def to_base36(value: int) -> str:
    if value < 0:
        return "-" + to_base36(-value)
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class TimestampIdGenerator:
    """``custom_<base36 ms timestamp>_<base36 random 0-9999>`` ids."""

    def __init__(
        self,
        prefix: str = "custom",
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.prefix = prefix
        self._clock = clock
        self._rng = rng or random.Random()

    def next_id(self) -> str:
        millis = int(self._clock() * 1000)
        suffix = self._rng.randint(0, 9999)
        return f"{self.prefix}_{to_base36(millis)}_{to_base36(suffix)}"


class SequentialIdGenerator:
    """Deterministic ids, handy for tests and reproducible exports."""

    def __init__(self, prefix: str = "custom", start: int = 1):
        self.prefix = prefix
        self._next = start

    def next_id(self) -> str:
        value = self._next
        self._next += 1
        return f"{self.prefix}_seq_{to_base36(value)}"


def parse_rules_json(raw: Union[str, bytes, None]) -> Any:
    """Decode rule-set JSON text, raising MalformedJsonError on failure."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedJsonError(str(exc)) from exc

    text = (raw or "").strip()
    if not text:
        raise MalformedJsonError("No rules JSON provided")

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedJsonError(str(exc)) from exc


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _or(value: Any, default: Any) -> Any:
    return value if value else default


def has_pattern(candidate: Any) -> bool:
    """True when a raw rule carries a usable ``pattern`` or ``regex``."""
    if not isinstance(candidate, Mapping):
        return False
    return _non_blank(candidate.get("pattern")) or _non_blank(candidate.get("regex"))


def normalize_rule(
    raw: Mapping[str, Any],
    id_generator: IdGenerator,
    defaults: NormalizationDefaults = NormalizationDefaults(),
) -> Indicator:
    """Map one raw rule to an ``Indicator`` (caller guarantees ``has_pattern``)."""
    pattern = raw.get("pattern") if _non_blank(raw.get("pattern")) else raw.get("regex")

    confidence = raw.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = defaults.confidence

    return Indicator(
        id=raw.get("id") or id_generator.next_id(),
        pattern=pattern,
        flags=_or(raw.get("flags"), defaults.flags),
        severity=_or(raw.get("severity"), defaults.severity),
        description=_or(raw.get("description"), defaults.description),
        confidence=confidence,
        action=_or(raw.get("action"), defaults.action),
        category=raw.get("category") or raw.get("type") or defaults.category,
    )


def normalize_candidates(
    candidates: Iterable[Any],
    id_generator: IdGenerator,
    defaults: NormalizationDefaults = NormalizationDefaults(),
) -> list[Indicator]:
    return [normalize_rule(c, id_generator, defaults) for c in candidates if has_pattern(c)]


def normalize_rule_set(
    value: Any,
    *,
    id_generator: Optional[IdGenerator] = None,
    defaults: Optional[NormalizationDefaults] = None,
) -> CanonicalRuleSet:
    """
    Canonicalize decoded rule JSON (or an already classified ``RuleSetInput``).

    Raises UnrecognizedSchemaError when the document matches no supported shape.
    Legacy synthesis is not applied here.
    """
    rule_input = value if isinstance(value, RuleSetInput) else classify_rule_set(value)
    if rule_input.shape is RuleSetShape.UNRECOGNIZED:
        raise UnrecognizedSchemaError()

    generator = id_generator or TimestampIdGenerator()
    indicators = normalize_candidates(
        rule_input.candidates,
        generator,
        defaults or NormalizationDefaults(),
    )
    dropped = len(rule_input.candidates) - len(indicators)
    if dropped:
        logger.debug("Skipped %d rule(s) without pattern/regex (%s)", dropped, rule_input.shape.value)

    return CanonicalRuleSet(
        phishing_indicators=indicators,
        blocking_rules=rule_input.blocking_rules,
    )
