"""Rule preparation and evaluation orchestration."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from ..constants import DECISIONS
from ..errors import EvaluationExecutionError, NoUsableIndicatorsError
from ..rules.models import CanonicalRuleSet
from ..rules.normalizer import (
    IdGenerator,
    NormalizationDefaults,
    normalize_rule_set,
    parse_rules_json,
)
from ..rules.shapes import RuleSetShape, classify_rule_set
from ..rules.synthesizer import SynthesisPolicy, synthesize_indicators
from .engine import EvaluationEngine
from .models import EvaluationOutcome, EvaluationRequest, EvaluationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRuleSet:
    """A canonical rule set ready for evaluation."""

    rule_set: CanonicalRuleSet
    shape: RuleSetShape
    normalized_count: int = 0
    synthesized_count: int = 0


def prepare_rule_set(
    value: Any,
    *,
    id_generator: Optional[IdGenerator] = None,
    defaults: Optional[NormalizationDefaults] = None,
    policy: Optional[SynthesisPolicy] = None,
) -> PreparedRuleSet:
    """
    Normalize decoded rule JSON, falling back to legacy synthesis.

    Synthesis only runs when normalization produced nothing and the
    document was in the legacy ``rules`` shape. Raises
    UnrecognizedSchemaError or NoUsableIndicatorsError.
    """
    rule_input = classify_rule_set(value)
    rule_set = normalize_rule_set(rule_input, id_generator=id_generator, defaults=defaults)
    normalized_count = len(rule_set.phishing_indicators)

    synthesized = []
    if not rule_set.phishing_indicators and rule_input.is_legacy:
        synthesized = synthesize_indicators(rule_input.legacy_rules, policy)
        rule_set = CanonicalRuleSet(
            phishing_indicators=synthesized,
            blocking_rules=rule_set.blocking_rules,
        )

    if not rule_set.phishing_indicators:
        raise NoUsableIndicatorsError()

    logger.debug(
        "Prepared %d indicators from %s input (%d synthesized)",
        len(rule_set.phishing_indicators),
        rule_input.shape.value,
        len(synthesized),
    )
    return PreparedRuleSet(
        rule_set=rule_set,
        shape=rule_input.shape,
        normalized_count=normalized_count,
        synthesized_count=len(synthesized),
    )


def prepare_rule_set_from_text(raw: Union[str, bytes, None], **kwargs: Any) -> PreparedRuleSet:
    """Parse rule JSON text, then ``prepare_rule_set``. Raises MalformedJsonError first."""
    return prepare_rule_set(parse_rules_json(raw), **kwargs)


class EvaluationOrchestrator:
    """Runs one evaluation per call against an injected engine.

    There is no retry and no deadline: a failed evaluation is reported and
    the user re-triggers it. Elapsed wall-clock time is measured around the
    engine call only.
    """

    def __init__(
        self,
        engine: EvaluationEngine,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.engine = engine
        self._clock = clock

    async def evaluate(self, request: EvaluationRequest) -> EvaluationOutcome:
        started = self._clock()
        try:
            raw = self.engine.evaluate(request)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as exc:
            logger.warning("Evaluation failed for %s: %s", request.url, exc)
            raise EvaluationExecutionError(str(exc) or exc.__class__.__name__) from exc
        elapsed_ms = int(round((self._clock() - started) * 1000))

        if isinstance(raw, EvaluationResult):
            result = raw
        elif isinstance(raw, Mapping):
            try:
                result = EvaluationResult.from_dict(raw)
            except (TypeError, AttributeError, ValueError) as exc:
                logger.warning("Malformed engine result for %s: %s", request.url, exc)
                raise EvaluationExecutionError(f"Malformed engine result: {exc}") from exc
        else:
            raise EvaluationExecutionError(f"Engine returned {type(raw).__name__}, expected a result")

        if result.final_decision not in DECISIONS:
            logger.warning("Engine returned unknown decision %r", result.final_decision)

        logger.info(
            "Evaluated %s: decision=%s threats=%d (%dms)",
            request.url,
            result.final_decision,
            len(result.threats),
            elapsed_ms,
        )
        return EvaluationOutcome(result=result, elapsed_ms=elapsed_ms, request=request)

    async def run(self, rule_set: CanonicalRuleSet, page_source: str, url: str) -> EvaluationOutcome:
        """Evaluate a canonical rule set; refuses to run an empty one."""
        if not rule_set.phishing_indicators:
            raise NoUsableIndicatorsError()
        request = EvaluationRequest(rules_json=rule_set, page_source=page_source, url=url)
        return await self.evaluate(request)

    async def run_playground(
        self,
        rules_text: Union[str, bytes],
        page_source: str,
        url: str,
        **prepare_kwargs: Any,
    ) -> tuple[PreparedRuleSet, EvaluationOutcome]:
        """Full pipeline from raw rule text: parse, prepare, evaluate."""
        prepared = prepare_rule_set_from_text(rules_text, **prepare_kwargs)

        url = (url or "").strip()
        if not url:
            raise ValueError("Provide a Test URL")
        page_source = (page_source or "").strip()
        if not page_source:
            raise ValueError("Provide HTML source")

        outcome = await self.run(prepared.rule_set, page_source, url)
        return prepared, outcome
