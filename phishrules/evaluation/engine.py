"""Evaluation engine contract and the bundled regex engine.

The orchestrator only depends on ``EvaluationEngine``. ``RegexEvaluationEngine``
is a lightweight implementation that works on raw HTML without a browser:
indicators are regex-matched against the source, the visible text and the
URL, and a subset of blocking rules is approximated with string parsing.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Iterable, Mapping, Protocol, Union

from ..constants import SEVERITIES
from ..rules.patterns import regex_flags
from .models import EvaluationRequest, EvaluationResult

logger = logging.getLogger(__name__)

SEVERITY_WEIGHTS = {"critical": 25, "high": 15, "medium": 10, "low": 5}

UNSUPPORTED_FEATURES = (
    "dynamic_scripts",
    "network_headers",
    "live_stylesheet_rules",
    "referrer_validation",
)

SNIPPET_RADIUS = 60

_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.I)
_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.I)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")
_FORM_RE = re.compile(r"<form[^>]*>([\s\S]*?)</form>", re.I)
_FORM_ACTION_RE = re.compile(r"action=[\"']([^\"']+)[\"']", re.I)
_PASSWORD_RE = re.compile(r"type=[\"']password[\"']", re.I)
_RESOURCE_RE = re.compile(r"<(?:link|script)[^>]+(?:href|src)=[\"']([^\"']+)[\"'][^>]*>", re.I)


class EvaluationEngine(Protocol):
    """Anything that can evaluate a rule set against a page."""

    def evaluate(
        self, request: EvaluationRequest
    ) -> Union[EvaluationResult, Mapping[str, Any], Awaitable[Any]]:  # pragma: no cover - interface
        ...


def strip_html_to_visible_text(html: str) -> str:
    text = _SCRIPT_RE.sub(" ", html or "")
    text = _STYLE_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def extract_forms(html: str) -> list[dict]:
    forms: list[dict] = []
    for match in _FORM_RE.finditer(html or ""):
        action = _FORM_ACTION_RE.search(match.group(0))
        forms.append(
            {
                "action": action.group(1) if action else "",
                "has_password": bool(_PASSWORD_RE.search(match.group(1))),
            }
        )
    return forms


def extract_resources(html: str) -> list[str]:
    return [m.group(1) for m in _RESOURCE_RE.finditer(html or "")]


def build_snippet(source: str, regex: re.Pattern) -> str:
    """Plain-text excerpt around the first match (escaping is left to the renderer)."""
    match = regex.search(source)
    if not match:
        return ""
    start = max(0, match.start() - SNIPPET_RADIUS)
    end = min(len(source), match.end() + SNIPPET_RADIUS)
    excerpt = source[start:end]
    if start > 0:
        excerpt = "…" + excerpt
    if end < len(source):
        excerpt = excerpt + "…"
    return excerpt


def _context_satisfied(contexts: Iterable[Any], source: str, text: str) -> bool:
    for ctx in contexts:
        ctx = str(ctx)
        try:
            rx = re.compile(ctx, re.I)
        except re.error:
            lowered = ctx.lower()
            if lowered in source.lower() or lowered in text.lower():
                return True
            continue
        if rx.search(source) or rx.search(text):
            return True
    return False


def derive_final_decision(threats: list[dict], should_block: bool) -> str:
    if should_block:
        return "block"
    if any(t["action"] == "block" and t["severity"] in ("critical", "high") for t in threats):
        return "block"
    if threats and any(t["action"] == "warn" or t["severity"] != "low" for t in threats):
        return "warn"
    return "pass"


class RegexEvaluationEngine:
    """Regex-driven evaluation of ``phishing_indicators`` and ``blocking_rules``."""

    def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        rules = request.rules_json.to_dict()
        source = request.page_source or ""
        url = request.url or "about:blank"
        text = strip_html_to_visible_text(source)
        notes: list[str] = []

        threats, score = self._process_indicators(rules.get("phishing_indicators") or [], source, text, url, notes)

        blocking_rules = rules.get("blocking_rules")
        if isinstance(blocking_rules, list):
            blocking = self._run_blocking_rules(blocking_rules, source)
        else:
            notes.append("No blocking_rules in rules file")
            blocking = {"shouldBlock": False, "reason": "", "triggeredRuleIds": []}

        counts = {severity: 0 for severity in SEVERITIES}
        for threat in threats:
            if threat["severity"] in counts:
                counts[threat["severity"]] += 1

        return EvaluationResult.from_dict(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "url": url,
                "finalDecision": derive_final_decision(threats, blocking["shouldBlock"]),
                "score": round(score, 2),
                "summary": {"totalThreats": len(threats), **counts},
                "threats": threats,
                "blocking": blocking,
                "unsupported": list(UNSUPPORTED_FEATURES),
                "notes": notes,
            }
        )

    def _process_indicators(
        self,
        indicators: list,
        source: str,
        text: str,
        url: str,
        notes: list[str],
    ) -> tuple[list[dict], float]:
        threats: list[dict] = []
        total = 0.0

        for ind in indicators:
            if not isinstance(ind, Mapping):
                continue
            try:
                regex = re.compile(str(ind.get("pattern") or ""), regex_flags(ind.get("flags") or "i"))
            except re.error as exc:
                notes.append(f"Skipped indicator {ind.get('id')}: {exc}")
                logger.debug("Indicator %s failed to compile: %s", ind.get("id"), exc)
                continue

            snippet = ""
            matched_from = ""
            if regex.search(source):
                matched_from = "source"
                snippet = build_snippet(source, regex)
            elif regex.search(text):
                matched_from = "text"
                snippet = build_snippet(text, regex)
            elif regex.search(url):
                matched_from = "url"
                snippet = url

            if not matched_from:
                continue
            contexts = ind.get("context_required")
            if contexts and not _context_satisfied(contexts, source, text):
                continue

            confidence = ind.get("confidence")
            if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
                confidence = 0.5
            threat = {
                "id": ind.get("id"),
                "severity": ind.get("severity") or "medium",
                "action": ind.get("action") or "warn",
                "category": ind.get("category") or "general",
                "confidence": confidence,
                "description": ind.get("description") or "",
                "matchDetails": snippet or matched_from,
            }
            threats.append(threat)
            total += SEVERITY_WEIGHTS.get(threat["severity"], 0) * (confidence or 0.5)

        return threats, total

    def _run_blocking_rules(self, blocking_rules: list, source: str) -> dict:
        triggered: list[str] = []
        for rule in blocking_rules:
            if not isinstance(rule, Mapping):
                continue
            condition = rule.get("condition") or {}
            rule_type = rule.get("type")
            try:
                if rule_type == "form_action_validation" and self._form_action_hit(condition, source):
                    triggered.append(rule.get("id"))
                elif rule_type == "resource_validation" and self._resource_hit(condition, source):
                    triggered.append(rule.get("id"))
            except re.error as exc:
                logger.debug("Blocking rule %s skipped: %s", rule.get("id"), exc)

        if triggered:
            return {
                "shouldBlock": True,
                "reason": f"{len(triggered)} blocking rule(s) triggered",
                "triggeredRuleIds": triggered,
            }
        return {"shouldBlock": False, "reason": "No blocking rules triggered", "triggeredRuleIds": []}

    @staticmethod
    def _form_action_hit(condition: Mapping[str, Any], source: str) -> bool:
        must_not_contain = condition.get("action_must_not_contain")
        if not must_not_contain:
            return False
        forms = extract_forms(source)
        if condition.get("has_password_field") and not any(f["has_password"] for f in forms):
            return False
        return any(f["action"] and must_not_contain in f["action"] for f in forms)

    @staticmethod
    def _resource_hit(condition: Mapping[str, Any], source: str) -> bool:
        pattern = condition.get("resource_pattern")
        required = condition.get("required_origin")
        if not pattern or not (condition.get("block_if_different_origin") and required):
            return False
        regex = re.compile(pattern, re.I)
        matches = [r for r in extract_resources(source) if regex.search(r)]
        return any(not m.startswith(required) for m in matches)
