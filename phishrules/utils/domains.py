"""URL and hostname helpers."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_DEFANGED_HOST_RE = re.compile(r"^https?\[:\]//([^/]+)")


def parse_hostname(url: str) -> str:
    """
    Return the lowercase hostname of an absolute URL.

    Raises ValueError when the value has no scheme or no host, so callers
    can fall back to the raw string.
    """
    parts = urlsplit(str(url or "").strip())
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Not an absolute URL: {url!r}")
    return parts.hostname


def is_defanged(url: str) -> bool:
    return "[.]" in url or "[:]" in url


def defang_url(url: str) -> str:
    """Bracket ``:`` and ``.`` so the URL no longer renders as a live link."""
    return str(url).replace(":", "[:]").replace(".", "[.]")


def defanged_hostname(url: str) -> str:
    """Host part of a defanged ``http[:]//`` URL, or the whole string."""
    match = _DEFANGED_HOST_RE.match(url)
    return match.group(1) if match else url
