"""URL pattern compilation and literal escaping for rule patterns."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..errors import PatternError

# Wildcard patterns keep "*" so it can be expanded after escaping.
_WILDCARD_META_RE = re.compile(r"[.+?^${}()|\[\]\\]")
# Literal substrings escape the full metacharacter set, "*" included.
_LITERAL_META_RE = re.compile(r"[.*+?^${}()|\[\]\\]")

_REGEX_HINTS = ("\\", "[", "(")

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


@dataclass(frozen=True)
class PatternValidation:
    """Outcome of validating a URL pattern."""

    valid: bool
    regex: str = ""
    error: Optional[str] = None


def escape_literal(text: str) -> str:
    """Escape every regex metacharacter so ``text`` matches literally."""
    return _LITERAL_META_RE.sub(lambda m: "\\" + m.group(0), str(text))


def looks_like_regex(pattern: str) -> bool:
    return pattern.startswith("^") or any(hint in pattern for hint in _REGEX_HINTS)


def url_pattern_to_regex(pattern: str) -> str:
    """
    Convert a URL pattern with ``*`` wildcards to a regex source.

    Patterns that already look like a regex (leading ``^`` or containing
    ``\\``, ``[`` or ``(``) are returned unchanged. Escaping runs before
    wildcard expansion so the inserted ``.*`` is never escaped.
    """
    if looks_like_regex(pattern):
        return pattern

    escaped = _WILDCARD_META_RE.sub(lambda m: "\\" + m.group(0), pattern)
    escaped = escaped.replace("*", ".*")
    if not escaped.startswith("^"):
        escaped = "^" + escaped
    if not pattern.endswith("*"):
        escaped = escaped + "$"
    return escaped


def validate_url_pattern(pattern: str) -> PatternValidation:
    """Validate a URL pattern (wildcard or regex). Never raises."""
    regex = url_pattern_to_regex(pattern)
    try:
        re.compile(regex)
    except re.error as exc:
        return PatternValidation(valid=False, regex=regex, error=str(exc))
    return PatternValidation(valid=True, regex=regex)


def compile_url_pattern(pattern: str) -> re.Pattern:
    """Compile a URL pattern, raising PatternError when it is not a valid regex."""
    regex = url_pattern_to_regex(pattern)
    try:
        return re.compile(regex)
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc


def validate_allowlist(patterns: Iterable[str]) -> list[str]:
    """Return one error line per invalid, non-blank allowlist entry."""
    errors: list[str] = []
    for raw in patterns or []:
        pattern = str(raw or "").strip()
        if not pattern:
            continue
        result = validate_url_pattern(pattern)
        if not result.valid:
            errors.append(f'Invalid pattern in URL allowlist: "{pattern}" - {result.error}')
    return errors


def regex_flags(flags: str | None) -> int:
    """Translate a JavaScript-style flag string ("gi", "i", ...) to ``re`` flags.

    ``g``, ``y`` and ``u`` have no ``re`` counterpart and are ignored.
    """
    value = 0
    for char in str(flags or ""):
        value |= _FLAG_MAP.get(char, 0)
    return value


class UrlAllowlist:
    """Matches URLs against a list of wildcard or regex URL patterns."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: list[str] = []
        self._compiled: list[re.Pattern] = []
        for raw in patterns or []:
            pattern = str(raw or "").strip()
            if not pattern:
                continue
            self._compiled.append(compile_url_pattern(pattern))
            self.patterns.append(pattern)

    def __len__(self) -> int:
        return len(self._compiled)

    def matches(self, url: str) -> Optional[str]:
        """Return the first pattern matching ``url``, or None."""
        for pattern, compiled in zip(self.patterns, self._compiled):
            if compiled.search(url or ""):
                return pattern
        return None
