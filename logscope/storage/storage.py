"""SQLite event log query engine."""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import DEFAULT_PAGE_SIZE, PathLike, resolve_db_path
from ..logging_config import get_logger
from ..models import (
    EventQuery,
    EventRow,
    Histogram,
    HistogramQuery,
    SessionRecord,
)
from .histogram import build_buckets, choose_bucket_width

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_EVENT_COLUMNS = """
    id, ts_ms, session_id, method, server_name, server_version,
    server_protocol, duration_ms, ok, error, request_json, response_json
"""


class StoreUnavailableError(RuntimeError):
    """The event store could not be opened or its schema could not be created."""


class IEventStore(Protocol):
    """Read access to the persisted event log."""

    async def ensure_initialized(self) -> None:
        """Open the connection and create the schema (idempotent)."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def query_events(self, query: EventQuery | None = None) -> list[EventRow]:
        """Filtered page of events, newest first."""
        ...

    async def query_events_since(
        self,
        since_ts_ms: int,
        server: str | None = None,
        method: str | None = None,
        ok: bool | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[EventRow]:
        """Events strictly newer than since_ts_ms, newest first."""
        ...

    async def count_events(self, server: str | None = None) -> int:
        """Total row count, optionally for one server."""
        ...

    async def query_event_histogram(
        self, query: HistogramQuery | None = None
    ) -> Histogram:
        """Time-bucketed per-method counts over the filtered set."""
        ...

    async def get_session(self, session_id: str) -> SessionRecord | None:
        """Get a session record by ID."""
        ...


def parse_json_field(value: Any) -> Any:
    """Decode a serialized payload column; undecodable text becomes None."""
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Discarding undecodable payload column")
            return None
    return value


def _row_to_event(row: tuple) -> EventRow:
    return EventRow(
        id=str(row[0]),
        ts_ms=int(row[1]),
        session_id=row[2],
        method=str(row[3]),
        server_name=row[4],
        server_version=row[5],
        server_protocol=row[6],
        duration_ms=int(row[7]) if row[7] is not None else None,
        ok=bool(row[8]),
        error=row[9],
        request_json=parse_json_field(row[10]),
        response_json=parse_json_field(row[11]),
    )


def _filter_conditions(
    server: str | None, method: str | None, ok: bool | None
) -> tuple[list[str], list[Any]]:
    conditions: list[str] = []
    params: list[Any] = []

    if server is not None:
        conditions.append("server_name = ?")
        params.append(server)
    if method is not None:
        conditions.append("method = ?")
        params.append(method)
    if ok is not None:
        conditions.append("ok = ?")
        params.append(1 if ok else 0)

    return conditions, params


def _where(conditions: list[str]) -> str:
    return f"WHERE {' AND '.join(conditions)}" if conditions else ""


def build_events_query(query: EventQuery) -> tuple[str, list[Any]]:
    """Build the parameterized SELECT for one page of events."""
    conditions, params = _filter_conditions(query.server, query.method, query.ok)

    if query.start_ts_ms is not None:
        conditions.append("ts_ms >= ?")
        params.append(query.start_ts_ms)
    if query.end_ts_ms is not None:
        conditions.append("ts_ms <= ?")
        params.append(query.end_ts_ms)
    if query.after is not None:
        # Resume strictly after the cursor in (ts_ms DESC, id DESC) order
        conditions.append("(ts_ms < ? OR (ts_ms = ? AND id < ?))")
        params.extend([query.after.ts_ms, query.after.ts_ms, query.after.id])

    sql = f"""
        SELECT {_EVENT_COLUMNS}
        FROM rpc_events
        {_where(conditions)}
        ORDER BY ts_ms DESC, id DESC
        LIMIT ?
    """
    params.append(query.limit)
    return sql, params


class EventStore:
    """Lazily connected aiosqlite store; read-only towards the event log."""

    def __init__(self, db_path: PathLike | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def db_path(self) -> PathLike:
        return self._db_path

    async def ensure_initialized(self) -> None:
        """Open the connection and create the schema (idempotent)."""
        await self._connection()

    async def _connection(self) -> aiosqlite.Connection:
        if self._initialized and self._conn is not None:
            return self._conn

        async with self._init_lock:
            if self._initialized and self._conn is not None:
                return self._conn
            try:
                if self._conn is None:
                    self._conn = await aiosqlite.connect(self._db_path)
                with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
                    schema_sql = f.read()
                await self._conn.executescript(schema_sql)
                await self._conn.commit()
            except (sqlite3.Error, OSError) as e:
                logger.error(
                    "Event store initialization failed",
                    exc_info=True,
                    extra={"context": {"db_path": str(self._db_path)}},
                )
                raise StoreUnavailableError(
                    f"Event store unavailable at {self._db_path}: {e}"
                ) from e
            self._initialized = True
            logger.info(
                "Event store initialized",
                extra={"context": {"db_path": str(self._db_path)}},
            )
            return self._conn

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    async def query_events(self, query: EventQuery | None = None) -> list[EventRow]:
        """Filtered page of events, newest first."""
        conn = await self._connection()
        sql, params = build_events_query(query or EventQuery())

        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        await cursor.close()

        return [_row_to_event(row) for row in rows]

    async def query_events_since(
        self,
        since_ts_ms: int,
        server: str | None = None,
        method: str | None = None,
        ok: bool | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[EventRow]:
        """Events strictly newer than since_ts_ms, newest first."""
        return await self.query_events(
            EventQuery(
                server=server,
                method=method,
                ok=ok,
                start_ts_ms=since_ts_ms + 1,
                limit=limit,
            )
        )

    async def count_events(self, server: str | None = None) -> int:
        """Total row count, optionally for one server."""
        conn = await self._connection()
        conditions, params = _filter_conditions(server, None, None)

        cursor = await conn.execute(
            f"SELECT COUNT(*) FROM rpc_events {_where(conditions)}", params
        )
        row = await cursor.fetchone()
        await cursor.close()

        return int(row[0]) if row else 0

    async def query_event_histogram(
        self, query: HistogramQuery | None = None
    ) -> Histogram:
        """Time-bucketed per-method counts over the filtered set.

        1. Find the time domain of the filtered rows (empty -> sentinel).
        2. Pick a bucket width that keeps the count within ``max_buckets``.
        3. Group by bucket index and method, then emit every bucket in the
           domain, including empty ones.
        """
        query = query or HistogramQuery()
        if query.max_buckets < 1:
            raise ValueError(f"max_buckets must be >= 1, got {query.max_buckets}")

        conn = await self._connection()
        conditions, params = _filter_conditions(query.server, query.method, query.ok)
        where_clause = _where(conditions)

        cursor = await conn.execute(
            f"SELECT MIN(ts_ms), MAX(ts_ms) FROM rpc_events {where_clause}", params
        )
        bounds = await cursor.fetchone()
        await cursor.close()

        if not bounds or bounds[0] is None or bounds[1] is None:
            return Histogram.empty()

        min_ts, max_ts = int(bounds[0]), int(bounds[1])
        range_ms = max_ts - min_ts
        width = choose_bucket_width(range_ms, query.max_buckets)

        cursor = await conn.execute(
            f"""
            SELECT (ts_ms - ?) / ? AS bucket_idx, method, COUNT(*)
            FROM rpc_events
            {where_clause}
            GROUP BY bucket_idx, method
            ORDER BY bucket_idx ASC, method ASC
            """,
            [min_ts, width, *params],
        )
        rows = await cursor.fetchall()
        await cursor.close()

        return Histogram(
            start_ts_ms=min_ts,
            end_ts_ms=max_ts,
            bucket_width_ms=width,
            buckets=build_buckets(min_ts, range_ms, width, rows),
        )

    async def get_session(self, session_id: str) -> SessionRecord | None:
        """Get a session record by ID."""
        conn = await self._connection()

        cursor = await conn.execute(
            """
            SELECT session_id, created_at_ms, last_seen_at_ms,
                   client_name, client_version, client_protocol
            FROM sessions
            WHERE session_id = ?
            """,
            (session_id,),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if not row:
            return None

        return SessionRecord(
            session_id=row[0],
            created_at_ms=int(row[1]),
            last_seen_at_ms=int(row[2]),
            client_name=row[3],
            client_version=row[4],
            client_protocol=row[5],
        )
