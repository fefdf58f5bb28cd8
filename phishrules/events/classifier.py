"""Security event classification and display formatting.

Log events are freeform mappings written by instrumentation elsewhere.
Everything here reads them and returns display strings; no event is
ever modified.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from ..constants import ACCESS_LOGS, DEBUG_LOGS
from ..utils.domains import defang_url, defanged_hostname, is_defanged, parse_hostname

EVENT_DISPLAY_NAMES: dict[str, str] = {
    # Core security events
    "url_access": "Page Scanned",
    "content_threat_detected": "Content Threat Detected",
    "threat_detected": "Security Threat Detected",
    "form_submission": "Form Monitored",
    "script_injection": "Security Script Injected",
    "page_scanned": "Page Scanned",
    "blocked_page_viewed": "Blocked Content Viewed",
    "threat_blocked": "Threat Blocked",
    "threat_detected_no_action": "Threat Detected",
    "legitimate_access": "Legitimate Access",
    # Phishing
    "phishing_page": "Phishing Page Blocked",
    "fake_login": "Fake Login Blocked",
    "credential_harvesting": "Credential Harvesting Blocked",
    "microsoft_impersonation": "Microsoft Impersonation Blocked",
    "o365_phishing": "Office 365 Phishing Blocked",
    "login_spoofing": "Login Page Spoofing Blocked",
    # Malicious content
    "malicious_script": "Malicious Script Blocked",
    "suspicious_redirect": "Suspicious Redirect Blocked",
    "unsafe_download": "Unsafe Download Blocked",
    "malware_detected": "Malware Detected",
    "suspicious_form": "Suspicious Form Blocked",
    # Domain
    "typosquatting": "Typosquatting Domain Blocked",
    "suspicious_domain": "Suspicious Domain Blocked",
    "homograph_attack": "Homograph Attack Blocked",
    "punycode_abuse": "Punycode Abuse Blocked",
    # Content
    "suspicious_keywords": "Suspicious Keywords Detected",
    "social_engineering": "Social Engineering Blocked",
    "urgency_tactics": "Urgency Tactics Detected",
    "trust_indicators": "Fake Trust Indicators Detected",
    # Technical
    "dom_manipulation": "DOM Manipulation Blocked",
    "form_tampering": "Form Tampering Blocked",
    "content_injection": "Content Injection Blocked",
    # Behavioral
    "unusual_behavior": "Unusual Behavior Detected",
    "rapid_redirects": "Rapid Redirects Blocked",
    "clipboard_access": "Clipboard Access Detected",
    # Policy
    "policy_violation": "Policy Violation",
    "suspicious_activity": "Suspicious Activity Detected",
}

# URLs of these events are defanged before display.
THREAT_EVENTS = frozenset(
    {
        "content_threat_detected",
        "threat_detected",
        "blocked_page_viewed",
        "threat_blocked",
        "threat_detected_no_action",
    }
)

# URLs of these events stay readable for audit, whatever else applies.
LEGITIMATE_EVENTS = frozenset(
    {
        "legitimate_access",
        "url_access",
        "page_scanned",
        "trusted-login-page",
        "user-logged-on",
        "ms-login-unknown-domain",
    }
)

_THREAT_TYPES = ("threat_detected", "content_threat_detected")
_THREAT_LEVEL_CLASSES = ("critical", "high", "medium", "low")


@dataclass(frozen=True)
class ClassifiedEvent:
    """Display strings derived from one log event."""

    timestamp: str
    category: str
    event_type: str
    url: str
    threat_level: str
    action: str
    message: str
    event_type_class: str
    threat_level_class: str

    def to_dict(self) -> dict:
        return asdict(self)


def _event(log: Mapping[str, Any]) -> Mapping[str, Any]:
    event = log.get("event")
    return event if isinstance(event, Mapping) else {}


def _event_type(log: Mapping[str, Any]) -> str:
    value = _event(log).get("type")
    return value if isinstance(value, str) else ""


def _js_str(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def categorize_event(log: Mapping[str, Any]) -> str:
    """Category of a stored security event, derived from its event type."""
    event_type = _event_type(log)
    if event_type == "legitimate_access":
        return "legitimate"
    if event_type == "rogue_app_detected":
        return "rogue_app"
    if event_type in ("url_access", "page_scanned"):
        return "access"
    return "security"


def channel_category(log: Mapping[str, Any], channel: str) -> str:
    """Category for an event read from a given store channel."""
    if channel == ACCESS_LOGS:
        return "access"
    if channel == DEBUG_LOGS:
        return "debug"
    return categorize_event(log)


def event_display_name(event_type: str) -> str:
    if event_type in EVENT_DISPLAY_NAMES:
        return EVENT_DISPLAY_NAMES[event_type]
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), event_type.replace("_", " "), flags=re.ASCII)


def event_type_display(log: Mapping[str, Any]) -> str:
    if log.get("category") == "debug":
        return str(log.get("level") or "debug").upper()
    event_type = _event_type(log)
    if event_type:
        return event_display_name(event_type)
    return str(log.get("type") or "UNKNOWN").upper()


def should_defang(event_type: Optional[str]) -> bool:
    return event_type in THREAT_EVENTS and event_type not in LEGITIMATE_EVENTS


def url_display(log: Mapping[str, Any]) -> str:
    """
    Hostname to show for an event.

    Already-defanged URLs are shown as-is, threat URLs are defanged,
    everything else is parsed to a plain hostname. Unparseable values
    fall back to the raw string.
    """
    event = _event(log)
    raw_url = event.get("url")
    try:
        if raw_url:
            url = str(raw_url)
            if is_defanged(url):
                return defanged_hostname(url)
            if should_defang(_event_type(log)):
                return defanged_hostname(defang_url(url))
            return parse_hostname(url)
        if log.get("url"):
            return parse_hostname(str(log["url"]))
    except ValueError:
        return str(raw_url or log.get("url") or "-")
    return "-"


def threat_level_display(log: Mapping[str, Any]) -> str:
    threat_level = _event(log).get("threatLevel")
    if threat_level:
        if threat_level == "none":
            return "NONE"
        return str(threat_level).upper()

    event_type = _event_type(log)
    if event_type == "legitimate_access":
        return "NONE"
    if event_type in _THREAT_TYPES:
        return "HIGH"
    if log.get("category") == "security":
        return "MEDIUM"
    return "-"


def threat_level_class(log: Mapping[str, Any], threat_level_text: Optional[str] = None) -> str:
    """CSS class for the threat level column ("" when none applies)."""
    text = threat_level_text if threat_level_text is not None else threat_level_display(log)
    threat_level = _event(log).get("threatLevel") or ""
    for level in _THREAT_LEVEL_CLASSES:
        if threat_level == level or text == level.upper():
            return f"threat-{level}"
    if threat_level == "none" or _event_type(log) == "legitimate_access":
        return "threat-none"
    return ""


def event_type_class(log: Mapping[str, Any]) -> str:
    event_type = _event_type(log)
    category = str(log.get("category") or "")
    if event_type == "legitimate_access" or category == "legitimate":
        return "event-type-legitimate"
    if event_type == "rogue_app_detected" or category == "rogue_app":
        return "event-type-rogue"
    if event_type in _THREAT_TYPES or category == "security":
        return "event-type-security"
    if category == "access" or "access" in event_type:
        return "event-type-access"
    if "warning" in event_type or category == "warning":
        return "event-type-warning"
    if "threat" in event_type or category == "threat":
        return "event-type-threat"
    return "event-type-default"


def action_display(log: Mapping[str, Any]) -> str:
    action = _event(log).get("action")
    if action:
        return str(action).replace("_", " ").upper()
    event_type = _event_type(log)
    if event_type in _THREAT_TYPES:
        return "BLOCKED"
    if event_type == "url_access":
        return "ALLOWED"
    return "-"


def redirect_info(event: Mapping[str, Any]) -> str:
    """Redirect target and client metadata suffix shared by all messages."""
    info = ""
    if event.get("redirectTo"):
        info += f" → {event['redirectTo']}"
    if event.get("clientId"):
        info += f" [Client: {event['clientId']}"
        if event.get("clientSuspicious"):
            info += " ⚠️"
            if event.get("clientReason"):
                info += f": {event['clientReason']}"
        info += "]"
    return info


def _host_or_raw(url: Any) -> str:
    try:
        return parse_hostname(str(url or ""))
    except ValueError:
        return str(url or "unknown")


def _content_threat_message(event: Mapping[str, Any]) -> str:
    details = "Malicious content detected"
    if event.get("reason"):
        details += f": {event['reason']}"
    if event.get("details"):
        details += f". {event['details']}"
    analysis = event.get("analysis")
    if isinstance(analysis, Mapping):
        indicators: list[str] = []
        if analysis.get("aadLike"):
            indicators.append("AAD-like elements")
        if analysis.get("formActionFail"):
            indicators.append("Non-Microsoft form action")
        external = analysis.get("nonMicrosoftResources")
        if isinstance(external, (int, float)) and not isinstance(external, bool) and external > 0:
            indicators.append(f"{_js_str(external)} external resources")
        if indicators:
            details += f" [{', '.join(indicators)}]"
    return details


def _rule_name(rule: Any) -> str:
    if not isinstance(rule, Mapping):
        return ""
    name = rule.get("id") or rule.get("type")
    return "" if name is None else _js_str(name)


def _threat_message(event: Mapping[str, Any]) -> str:
    details = "Security threat detected"
    if event.get("reason"):
        details += f": {event['reason']}"
    triggered = event.get("triggeredRules")
    if isinstance(triggered, list) and triggered:
        names = ", ".join(_rule_name(rule) for rule in triggered)
        details += f" [Triggered rules: {names}]"
    elif event.get("ruleDetails"):
        details += f" [{event['ruleDetails']}]"
    if "score" in event and "threshold" in event:
        details += f" [Score: {_js_str(event['score'])}/{_js_str(event['threshold'])}]"
    if event.get("details"):
        details += f". {event['details']}"
    return details


def format_log_message(log: Mapping[str, Any]) -> str:
    """One-line human summary of an event."""
    if log.get("category") == "debug":
        return str(log.get("message") or "")

    event = _event(log)
    if not event:
        return str(log.get("message") or log.get("type") or "Unknown event")

    event_type = _event_type(log)
    suffix = redirect_info(event)

    if event_type == "url_access":
        return f"Accessed: {_host_or_raw(event.get('url'))}{suffix}"
    if event_type == "legitimate_access":
        return f"Legitimate access: {_host_or_raw(event.get('url'))}{suffix}"
    if event_type == "content_threat_detected":
        return _content_threat_message(event) + suffix
    if event_type in ("threat_detected", "threat_blocked", "threat_detected_no_action"):
        return _threat_message(event) + suffix
    if event_type == "form_submission":
        message = "Form submission"
        if event.get("action"):
            message += f" to {str(event['action']).replace(':', '[:]')}"
        if event.get("reason"):
            message += f" - {event['reason']}"
        return message + suffix
    if event_type == "script_injection":
        return "Security script injected to protect user"
    if event_type == "page_scanned":
        return "Page security scan completed" + suffix

    message = str(event.get("description") or event_type.replace("_", " "))
    if event.get("url"):
        message += f" on {str(event['url']).replace(':', '[:]')}"
    if event.get("reason"):
        message += f": {event['reason']}"
    return message + suffix


def classify_event(log: Mapping[str, Any], channel: Optional[str] = None) -> ClassifiedEvent:
    """Derive every display field of an event.

    The category comes from the store channel when given, else from the
    event's own ``category``, else from its event type.
    """
    if channel:
        category = channel_category(log, channel)
    else:
        category = str(log.get("category") or categorize_event(log))
    view = dict(log)
    view["category"] = category

    threat_level = threat_level_display(view)
    return ClassifiedEvent(
        timestamp=str(log.get("timestamp") or ""),
        category=category,
        event_type=event_type_display(view),
        url=url_display(view),
        threat_level=threat_level,
        action=action_display(view),
        message=format_log_message(view),
        event_type_class=event_type_class(view),
        threat_level_class=threat_level_class(view, threat_level),
    )
