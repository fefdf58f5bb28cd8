"""Rule-set document loading from a packaged file or a URL."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from ..errors import RuleSetLoadError

logger = logging.getLogger(__name__)

USER_AGENT = "phishrules/1.0"


def is_remote(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


class RuleSetLoader:
    """Reads rule-set JSON text. One attempt per call; no retries."""

    def __init__(
        self,
        timeout: float = 5.0,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def load_text(self, source: Union[str, Path]) -> str:
        """Return the document text for a local path or an http(s) URL."""
        source_str = str(source)
        if is_remote(source_str):
            return await self._fetch(source_str)
        return await self._read(Path(source_str))

    async def _read(self, path: Path) -> str:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise RuleSetLoadError(str(path), exc.strerror or str(exc)) from exc
        logger.debug("Read %d bytes of rules from %s", len(data), path)
        return data.decode("utf-8-sig", errors="replace")

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.TimeoutException as exc:
            raise RuleSetLoadError(url, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise RuleSetLoadError(url, str(exc) or exc.__class__.__name__) from exc

        if resp.status_code >= 400:
            raise RuleSetLoadError(url, f"HTTP {resp.status_code}")

        logger.info("Fetched rules from %s (%d bytes)", url, len(resp.content))
        return resp.text
