"""Pytest configuration and fixtures."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import aiosqlite
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class EventWriter:
    """Stands in for the proxy: writes rows through its own connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def add_session(
        self,
        session_id: str = "s1",
        created_at_ms: int = 0,
        last_seen_at_ms: int = 0,
        client_name: str | None = "client",
    ) -> None:
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO sessions
            (session_id, created_at_ms, client_name, client_version,
             client_protocol, last_seen_at_ms)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (session_id, created_at_ms, client_name, "1.0", "2025-06-18", last_seen_at_ms),
        )
        await self._conn.commit()

    async def add(
        self,
        id: str,
        ts_ms: int,
        method: str = "callTool",
        server_name: str | None = "alpha",
        ok: bool = True,
        error: str | None = None,
        duration_ms: int | None = 5,
        request: Any = None,
        response: Any = None,
        raw_request: str | None = None,
        session_id: str = "s1",
    ) -> dict[str, Any]:
        """Insert one event row; returns it as a live-channel payload."""
        request_text = raw_request if raw_request is not None else (
            json.dumps(request) if request is not None else None
        )
        response_text = json.dumps(response) if response is not None else None
        await self._conn.execute(
            """
            INSERT INTO rpc_events
            (id, ts_ms, session_id, method, server_name, server_version,
             server_protocol, duration_ms, ok, error, request_json, response_json)
            VALUES (?, ?, ?, ?, ?, NULL, NULL, ?, ?, ?, ?, ?)
            """,
            (
                id,
                ts_ms,
                session_id,
                method,
                server_name,
                duration_ms,
                1 if ok else 0,
                error,
                request_text,
                response_text,
            ),
        )
        await self._conn.commit()
        return {
            "id": id,
            "ts_ms": ts_ms,
            "session_id": session_id,
            "method": method,
            "server_name": server_name,
            "duration_ms": duration_ms,
            "ok": ok,
            "error": error,
            "request_json": request,
            "response_json": response,
        }

    async def add_many(self, rows: list[dict[str, Any]]) -> None:
        for row in rows:
            await self.add(**row)


class GatedBus:
    """Bus wrapper whose listener registration waits for ``gate``."""

    def __init__(self, inner):
        self.inner = inner
        self.gate = asyncio.Event()

    async def listen(self, name, handler):
        await self.gate.wait()
        return await self.inner.listen(name, handler)

    async def emit(self, name, payload):
        await self.inner.emit(name, payload)


@pytest.fixture
def db_path(tmp_path):
    """Path of a throwaway event database."""
    return tmp_path / "logs.sqlite"


@pytest_asyncio.fixture
async def store(db_path):
    """Create an initialized file-backed event store."""
    from logscope.storage import EventStore

    st = EventStore(db_path)
    await st.ensure_initialized()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def writer(store, db_path):
    """Separate connection that writes events, like the proxy does."""
    conn = await aiosqlite.connect(db_path)
    w = EventWriter(conn)
    await w.add_session("s1")
    yield w
    await conn.close()


@pytest.fixture
def bus():
    """Create an in-memory notification bus."""
    from logscope.notifications import NotificationBus

    return NotificationBus()


@pytest.fixture
def gated_bus(bus):
    """Bus whose registrations stay pending until the test opens the gate."""
    return GatedBus(bus)


@pytest.fixture
def chart():
    """Create a headless chart viewport."""
    from logscope.logs import ChartViewport

    return ChartViewport()


@pytest.fixture
def rpc_event():
    """Build a live-channel event payload."""

    def _make(id: str, ts_ms: int, **overrides: Any) -> dict[str, Any]:
        payload = {
            "id": id,
            "ts_ms": ts_ms,
            "session_id": "s1",
            "method": "callTool",
            "server_name": "alpha",
            "ok": True,
        }
        payload.update(overrides)
        return payload

    return _make
