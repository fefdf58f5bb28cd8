"""Read-only access to stored security events.

Events are persisted elsewhere under three channel keys. This module reads
them back, tags each with a display category and merges them into one
newest-first list.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import aiosqlite

from ..constants import LOG_CHANNELS, SECURITY_EVENTS
from .classifier import channel_category

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Anything that can return the stored event lists by channel."""

    async def get(self, channels: Iterable[str]) -> dict[str, list[dict]]:
        ...


def _as_event_list(channel: str, value: Any) -> list[dict]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring %s: expected a list, got %s", channel, type(value).__name__)
        return []
    return [e for e in value if isinstance(e, dict)]


class JsonEventStore:
    """Events kept in one JSON document keyed by channel name."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read event store %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    async def get(self, channels: Iterable[str]) -> dict[str, list[dict]]:
        data = await asyncio.to_thread(self._read)
        return {channel: _as_event_list(channel, data.get(channel)) for channel in channels}


class SqliteEventStore:
    """Events kept as JSON values in a key/value SQLite table, opened read-only."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._has_table = False
        self._lock = asyncio.Lock()

    async def connect(self):
        """Open the database read-only. A missing file reads as empty."""
        if not self.db_path.exists():
            logger.info("Event store %s does not exist", self.db_path)
            return
        self._connection = await aiosqlite.connect(
            f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True
        )
        self._connection.row_factory = aiosqlite.Row
        async with self._lock:
            try:
                async with self._connection.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'kv'"
                ) as cursor:
                    self._has_table = await cursor.fetchone() is not None
            except aiosqlite.DatabaseError as exc:
                logger.warning("Failed to read event store %s: %s", self.db_path, exc)
                await self._connection.close()
                self._connection = None

    async def close(self):
        if self._connection:
            await self._connection.close()
            self._connection = None
        self._has_table = False

    async def get(self, channels: Iterable[str]) -> dict[str, list[dict]]:
        result: dict[str, list[dict]] = {channel: [] for channel in channels}
        if self._connection is None or not self._has_table:
            return result
        async with self._lock:
            for channel in result:
                async with self._connection.execute(
                    "SELECT value FROM kv WHERE key = ?", (channel,)
                ) as cursor:
                    row = await cursor.fetchone()
                if row is None:
                    continue
                try:
                    value = json.loads(row["value"])
                except (TypeError, json.JSONDecodeError) as exc:
                    logger.warning("Corrupt event list for %s: %s", channel, exc)
                    continue
                result[channel] = _as_event_list(channel, value)
        return result


def _timestamp_key(event: dict) -> Optional[float]:
    value = event.get("timestamp")
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) / 1000.0
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_newest_first(events: list[dict]) -> list[dict]:
    """Newest first; events without a usable timestamp go last."""
    dated = [(e, _timestamp_key(e)) for e in events]
    with_ts = sorted((p for p in dated if p[1] is not None), key=lambda p: p[1], reverse=True)
    without_ts = [e for e, ts in dated if ts is None]
    return [e for e, _ in with_ts] + without_ts


async def load_logs(store: EventStore) -> list[dict]:
    """
    Merge all channels into one list.

    Each returned event is a shallow copy carrying a ``category``: security
    events are categorized by type, access logs are "access" and debug logs
    are "debug".
    """
    channels = await store.get(LOG_CHANNELS)
    merged: list[dict] = []
    for channel in LOG_CHANNELS:
        for event in channels.get(channel, []):
            entry = dict(event)
            entry["category"] = channel_category(event, channel)
            merged.append(entry)
    logger.debug(
        "Loaded %d events (%d security)", len(merged), len(channels.get(SECURITY_EVENTS, []))
    )
    return sort_newest_first(merged)


def _is_debug_noise(event: dict) -> bool:
    if event.get("category") == "debug" and event.get("level") == "debug":
        return True
    inner = event.get("event")
    if isinstance(inner, dict) and inner.get("type") == "page_scanned":
        return not inner.get("threatDetected")
    return False


def filter_logs_for_display(logs: list[dict], debug_enabled: bool = False) -> list[dict]:
    """Hide debug-level entries and clean page scans unless debug logging is on."""
    if debug_enabled:
        return list(logs)
    return [e for e in logs if not _is_debug_noise(e)]


async def export_logs(store: EventStore, version: str, now: Optional[datetime] = None) -> dict:
    """Raw channel lists plus export metadata."""
    channels = await store.get(LOG_CHANNELS)
    document: dict[str, Any] = {channel: channels.get(channel, []) for channel in LOG_CHANNELS}
    document["timestamp"] = (now or datetime.now(timezone.utc)).isoformat()
    document["version"] = version
    return document


def open_event_store(path: Path) -> "JsonEventStore | SqliteEventStore":
    """Pick a store implementation from the file suffix."""
    path = Path(path)
    if path.suffix.lower() in (".db", ".sqlite", ".sqlite3"):
        return SqliteEventStore(path)
    return JsonEventStore(path)
