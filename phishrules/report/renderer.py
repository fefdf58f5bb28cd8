"""HTML and JSON rendering of evaluation results.

Rule text and page HTML are attacker-controlled, so every interpolated
value goes through ``escape_html``.
"""

from __future__ import annotations

import html
import json

from ..evaluation.models import EvaluationOutcome, Threat
from ..rules.validation import ValidationReport
from .ranking import clean_description, rank_threats, truncate_match

_DECISION_CLASSES = {"block": "block", "warn": "warning", "pass": "allow"}
_SUMMARY_CLASSES = {"block": "fail", "warn": "partial"}
_ITEM_CLASSES = {"critical": "error", "high": "warning", "medium": "success"}
_SEVERITY_BADGES = {"critical": "block", "high": "warning", "medium": "weight"}
_ACTION_BADGES = {"block": "block", "warn": "warning"}
_ACTION_LABELS = {"block": "Blocking", "warn": "Warn"}


def escape_html(value: object) -> str:
    """Escape & < > " and ' for safe interpolation into HTML."""
    return html.escape("" if value is None else str(value), quote=True)


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def decision_class(decision: str | None) -> str:
    """Badge class for a decision; unknown decisions get "secondary"."""
    return _DECISION_CLASSES.get(decision or "", "secondary")


def severity_badge_class(severity: str | None) -> str:
    return _SEVERITY_BADGES.get(severity or "", "allow")


def action_badge_class(action: str | None) -> str:
    return _ACTION_BADGES.get(action or "", "secondary")


def action_label(action: str | None) -> str:
    return _ACTION_LABELS.get(action or "", "Monitor")


def _group(title: str, body: str) -> str:
    return (
        '<div class="playground-result-group">'
        f'<div class="playground-result-title">{escape_html(title)}</div>'
        f"{body}</div>"
    )


def _render_summary(outcome: EvaluationOutcome) -> str:
    result = outcome.result
    summary = result.summary
    decision = result.final_decision or ""
    blocking = ""
    if result.blocking.should_block:
        blocking = f"<br><strong>Blocking Reason:</strong> {escape_html(result.blocking.reason)}"
    return _group(
        "Decision & Summary",
        f'<div class="playground-summary {_SUMMARY_CLASSES.get(decision, "pass")}">'
        f'<span class="playground-badge {decision_class(decision)}">{escape_html(decision.upper())}</span> '
        f"Score {escape_html(_number(result.score))} &bull; Threats {summary.total_threats} &bull; "
        f"Critical {summary.critical} &bull; High {summary.high} &bull; "
        f"Medium {summary.medium} &bull; Low {summary.low} &bull; {outcome.elapsed_ms}ms"
        f"{blocking}</div>",
    )


def render_threat(threat: Threat) -> str:
    """One ranked threat as a list item."""
    severity = threat.severity or ""
    category = threat.category or "general"
    desc = clean_description(threat.description)
    desc_html = f'<span class="playground-threat-description">{escape_html(desc)}</span>' if desc else ""
    match = truncate_match(threat.match_details)
    match_html = f'<code class="playground-code-fragment">{escape_html(match)}</code>' if match else ""
    item_class = _ITEM_CLASSES.get(severity, "")
    return (
        f'<li class="playground-result-item {item_class}">'
        f"<div><strong>{escape_html(threat.id)}</strong> "
        f'<span class="playground-badge {severity_badge_class(severity)}">{escape_html(severity.upper())}</span>'
        f'<span class="playground-badge {action_badge_class(threat.action)}">{action_label(threat.action)}</span>'
        f'<span class="playground-badge secondary">{escape_html(category)}</span>'
        f"{desc_html}{match_html}</div></li>"
    )


def _render_threats(threats: list[Threat]) -> str:
    if not threats:
        return _group("Threats", '<div class="playground-placeholder">No threats detected.</div>')
    items = "".join(render_threat(t) for t in threats)
    return _group("Threats", f'<ul class="playground-result-list">{items}</ul>')


def _render_unsupported(unsupported: tuple[str, ...]) -> str:
    if not unsupported:
        return ""
    items = "".join(
        '<li class="playground-result-item">'
        f'<span class="playground-badge secondary">N/A</span><div>{escape_html(u)}</div></li>'
        for u in unsupported
    )
    return _group("Unsupported Features", f'<ul class="playground-result-list">{items}</ul>')


def render_report(outcome: EvaluationOutcome) -> str:
    """Render the full report: summary, ranked threats, unsupported features, raw JSON."""
    ranked = rank_threats(outcome.result.threats)
    raw_json = json.dumps(outcome.result.to_dict(), indent=2, ensure_ascii=False)
    parts = [
        _render_summary(outcome),
        _render_threats(ranked),
        _render_unsupported(outcome.result.unsupported),
        _group("Raw JSON", f'<pre class="playground-code-fragment">{escape_html(raw_json)}</pre>'),
    ]
    return "\n".join(p for p in parts if p)


def export_report(outcome: EvaluationOutcome) -> str:
    """JSON export of the result with threats in ranked order."""
    data = outcome.result.to_dict()
    data["threats"] = [t.to_dict() for t in rank_threats(outcome.result.threats)]
    data["elapsedMs"] = outcome.elapsed_ms
    return json.dumps(data, indent=2, ensure_ascii=False)


def render_validation(report: ValidationReport) -> str:
    if report.ok:
        body = '<div class="playground-summary pass">No blocking validation issues found.</div>'
    else:
        items = "".join(f"<li>{escape_html(i.message)}</li>" for i in report.issues)
        body = f'<div class="playground-summary fail"><strong>Issues:</strong><ul>{items}</ul></div>'
    if report.suggestions:
        items = "".join(f"<li>{escape_html(s.message)}</li>" for s in report.suggestions)
        body += f'<div class="playground-summary partial"><strong>Suggestions:</strong><ul>{items}</ul></div>'
    return _group("Validation Results", body)
