"""Event log API routes."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import IApplication
from ...config import DEFAULT_MAX_BUCKETS, DEFAULT_PAGE_SIZE
from ...models import Cursor, EventQuery, HistogramQuery


class RpcEventResponse(BaseModel):
    """Response model for one event row."""

    id: str
    ts_ms: int
    session_id: str | None = None
    method: str
    server_name: str | None = None
    server_version: str | None = None
    server_protocol: str | None = None
    duration_ms: int | None = None
    ok: bool
    error: str | None = None
    request_json: Any = None
    response_json: Any = None


class CountResponse(BaseModel):
    """Response model for event count."""

    count: int


class MethodCountResponse(BaseModel):
    method: str
    count: int


class HistogramBucketResponse(BaseModel):
    start_ts_ms: int
    end_ts_ms: int
    counts: list[MethodCountResponse]


class HistogramResponse(BaseModel):
    """Response model for event histogram."""

    start_ts_ms: int | None
    end_ts_ms: int | None
    bucket_width_ms: int
    buckets: list[HistogramBucketResponse]


def create_logs_router(app: IApplication) -> APIRouter:
    """Create event log router."""
    router = APIRouter(prefix="/api/logs", tags=["logs"])

    @router.get("", response_model=list[RpcEventResponse])
    async def list_events(
        server: str | None = Query(None, description="Filter by server name"),
        method: str | None = Query(None, description="Filter by RPC method"),
        ok: bool | None = Query(None, description="Filter by success flag"),
        start_ts_ms: int | None = Query(None, description="Inclusive lower bound"),
        end_ts_ms: int | None = Query(None, description="Inclusive upper bound"),
        after_ts_ms: int | None = Query(None, description="Cursor timestamp"),
        after_id: str | None = Query(None, description="Cursor event ID"),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
    ) -> list[dict]:
        """Get one page of events, newest first."""
        if (after_ts_ms is None) != (after_id is None):
            raise HTTPException(
                status_code=400,
                detail="after_ts_ms and after_id must be given together",
            )
        after = (
            Cursor(ts_ms=after_ts_ms, id=after_id)
            if after_ts_ms is not None and after_id is not None
            else None
        )

        try:
            rows = await app.store.query_events(
                EventQuery(
                    server=server,
                    method=method,
                    ok=ok,
                    start_ts_ms=start_ts_ms,
                    end_ts_ms=end_ts_ms,
                    after=after,
                    limit=limit,
                )
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [row.to_dict() for row in rows]

    @router.get("/count", response_model=CountResponse)
    async def count_events(
        server: str | None = Query(None, description="Filter by server name"),
    ) -> dict:
        """Get total number of events."""
        try:
            return {"count": await app.store.count_events(server)}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/histogram", response_model=HistogramResponse)
    async def event_histogram(
        server: str | None = Query(None, description="Filter by server name"),
        method: str | None = Query(None, description="Filter by RPC method"),
        ok: bool | None = Query(None, description="Filter by success flag"),
        max_buckets: int = Query(DEFAULT_MAX_BUCKETS, ge=1, le=1000),
    ) -> dict:
        """Get time-bucketed event counts per method."""
        try:
            histogram = await app.store.query_event_histogram(
                HistogramQuery(
                    server=server, method=method, ok=ok, max_buckets=max_buckets
                )
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return {
            "start_ts_ms": histogram.start_ts_ms,
            "end_ts_ms": histogram.end_ts_ms,
            "bucket_width_ms": histogram.bucket_width_ms,
            "buckets": [
                {
                    "start_ts_ms": b.start_ts_ms,
                    "end_ts_ms": b.end_ts_ms,
                    "counts": [
                        {"method": c.method, "count": c.count} for c in b.counts
                    ],
                }
                for b in histogram.buckets
            ],
        }

    return router
