"""Tests for event store reading, merging and filtering."""

import json
from datetime import datetime, timezone

import aiosqlite
import pytest

from phishrules.events.store import (
    JsonEventStore,
    SqliteEventStore,
    export_logs,
    filter_logs_for_display,
    load_logs,
    open_event_store,
    sort_newest_first,
)

SECURITY = [
    {"timestamp": "2026-03-01T10:00:00Z", "event": {"type": "threat_detected", "url": "https://evil.test/"}},
    {"timestamp": "2026-03-01T12:00:00Z", "event": {"type": "legitimate_access", "url": "https://ok.test/"}},
    {"timestamp": "2026-03-01T09:00:00Z", "event": {"type": "page_scanned"}},
]
ACCESS = [{"timestamp": "2026-03-01T11:00:00Z", "event": {"type": "url_access", "url": "https://a.test/"}}]
DEBUG = [
    {"timestamp": "2026-03-01T08:00:00Z", "level": "debug", "message": "tick"},
    {"timestamp": "not-a-date", "level": "warn", "message": "slow"},
]


class _MemoryStore:
    def __init__(self, data):
        self.data = data

    async def get(self, channels):
        return {c: self.data.get(c, []) for c in channels}


@pytest.fixture
def store():
    return _MemoryStore({"securityEvents": SECURITY, "accessLogs": ACCESS, "debugLogs": DEBUG})


class TestLoadLogs:
    @pytest.mark.asyncio
    async def test_merged_newest_first(self, store):
        logs = await load_logs(store)
        assert [log["timestamp"] for log in logs] == [
            "2026-03-01T12:00:00Z",
            "2026-03-01T11:00:00Z",
            "2026-03-01T10:00:00Z",
            "2026-03-01T09:00:00Z",
            "2026-03-01T08:00:00Z",
            "not-a-date",
        ]

    @pytest.mark.asyncio
    async def test_categories(self, store):
        logs = await load_logs(store)
        categories = {log.get("message") or log["event"]["type"]: log["category"] for log in logs}
        assert categories == {
            "legitimate_access": "legitimate",
            "url_access": "access",
            "threat_detected": "security",
            "page_scanned": "access",
            "tick": "debug",
            "slow": "debug",
        }

    @pytest.mark.asyncio
    async def test_stored_events_not_mutated(self, store):
        await load_logs(store)
        assert "category" not in SECURITY[0]


class TestFilterLogs:
    @pytest.mark.asyncio
    async def test_hides_noise(self, store):
        logs = filter_logs_for_display(await load_logs(store), debug_enabled=False)
        kept = [log.get("message") or log["event"]["type"] for log in logs]
        assert kept == ["legitimate_access", "url_access", "threat_detected", "slow"]

    @pytest.mark.asyncio
    async def test_debug_enabled_keeps_everything(self, store):
        logs = await load_logs(store)
        assert filter_logs_for_display(logs, debug_enabled=True) == logs

    def test_page_scan_with_threat_kept(self):
        logs = [{"category": "access", "event": {"type": "page_scanned", "threatDetected": True}}]
        assert filter_logs_for_display(logs) == logs


def test_sort_handles_epoch_millis():
    events = [{"timestamp": 1_000}, {"timestamp": "1970-01-01T00:00:02+00:00"}, {}]
    assert sort_newest_first(events) == [events[1], events[0], events[2]]


@pytest.mark.asyncio
async def test_export_logs(store):
    now = datetime(2026, 3, 2, tzinfo=timezone.utc)
    document = await export_logs(store, "1.2.3", now=now)
    assert document["securityEvents"] == SECURITY
    assert document["accessLogs"] == ACCESS
    assert document["debugLogs"] == DEBUG
    assert document["version"] == "1.2.3"
    assert document["timestamp"] == "2026-03-02T00:00:00+00:00"


class TestJsonEventStore:
    @pytest.mark.asyncio
    async def test_reads_export_document(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps({"securityEvents": SECURITY, "accessLogs": "bad", "version": "1"}))
        channels = await JsonEventStore(path).get(["securityEvents", "accessLogs", "debugLogs"])
        assert channels == {"securityEvents": SECURITY, "accessLogs": [], "debugLogs": []}

    @pytest.mark.asyncio
    async def test_missing_and_corrupt_files(self, tmp_path):
        assert await JsonEventStore(tmp_path / "none.json").get(["securityEvents"]) == {"securityEvents": []}
        corrupt = tmp_path / "corrupt.json"
        corrupt.write_text("{oops")
        assert await JsonEventStore(corrupt).get(["debugLogs"]) == {"debugLogs": []}

    @pytest.mark.asyncio
    async def test_invalid_utf8_reads_as_empty(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"securityEvents": [{"x": "\xff"}]}')
        logs = await load_logs(JsonEventStore(path))
        assert logs == []


class TestSqliteEventStore:
    @pytest.mark.asyncio
    async def test_reads_kv_table(self, tmp_path):
        db_path = tmp_path / "events.db"
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("CREATE TABLE kv (key TEXT PRIMARY KEY, value TEXT)")
            await conn.execute("INSERT INTO kv VALUES (?, ?)", ("securityEvents", json.dumps(SECURITY)))
            await conn.execute("INSERT INTO kv VALUES (?, ?)", ("debugLogs", "{corrupt"))
            await conn.commit()

        store = SqliteEventStore(db_path)
        await store.connect()
        try:
            channels = await store.get(["securityEvents", "accessLogs", "debugLogs"])
        finally:
            await store.close()
        assert channels == {"securityEvents": SECURITY, "accessLogs": [], "debugLogs": []}

    @pytest.mark.asyncio
    async def test_empty_database(self, tmp_path):
        store = SqliteEventStore(tmp_path / "fresh.sqlite")
        await store.connect()
        try:
            logs = await load_logs(store)
        finally:
            await store.close()
        assert logs == []
        assert not (tmp_path / "fresh.sqlite").exists()

    @pytest.mark.asyncio
    async def test_non_sqlite_file_reads_as_empty(self, tmp_path):
        db_path = tmp_path / "events.db"
        db_path.write_bytes(b"this is not a database file" * 10)
        store = SqliteEventStore(db_path)
        try:
            await store.connect()
            channels = await store.get(["securityEvents"])
        finally:
            await store.close()
        assert channels == {"securityEvents": []}


def test_open_event_store_by_suffix(tmp_path):
    assert isinstance(open_event_store(tmp_path / "e.db"), SqliteEventStore)
    assert isinstance(open_event_store(tmp_path / "e.json"), JsonEventStore)
