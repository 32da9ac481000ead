"""Event log data models."""

from dataclasses import asdict, dataclass, field
from typing import Any

from ..config import DEFAULT_MAX_BUCKETS, DEFAULT_PAGE_SIZE


@dataclass(frozen=True, order=True)
class Cursor:
    """Resume point in a ``ts_ms DESC, id DESC`` ordering."""

    ts_ms: int
    id: str


@dataclass
class EventRow:
    """One persisted record of a completed proxied call."""

    id: str
    ts_ms: int
    session_id: str | None
    method: str
    server_name: str | None = None
    server_version: str | None = None
    server_protocol: str | None = None
    duration_ms: int | None = None
    ok: bool = True
    error: str | None = None  # only set when ok is False
    request_json: Any = None
    response_json: Any = None

    @property
    def cursor(self) -> Cursor:
        return Cursor(ts_ms=self.ts_ms, id=self.id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SessionRecord:
    """A connected caller, referenced by event rows."""

    session_id: str
    created_at_ms: int
    last_seen_at_ms: int
    client_name: str | None = None
    client_version: str | None = None
    client_protocol: str | None = None


@dataclass
class EventQuery:
    """Filter and page parameters for a paginated event query."""

    server: str | None = None
    method: str | None = None
    ok: bool | None = None  # None means "any"
    start_ts_ms: int | None = None
    end_ts_ms: int | None = None
    after: Cursor | None = None
    limit: int = DEFAULT_PAGE_SIZE


@dataclass
class HistogramQuery:
    """Filter parameters for a histogram aggregation."""

    server: str | None = None
    method: str | None = None
    ok: bool | None = None
    max_buckets: int = DEFAULT_MAX_BUCKETS


@dataclass
class MethodCount:
    """Number of events of one method inside a bucket."""

    method: str
    count: int


@dataclass
class HistogramBucket:
    """A fixed-width interval ``[start_ts_ms, end_ts_ms)``."""

    start_ts_ms: int
    end_ts_ms: int
    counts: list[MethodCount] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(c.count for c in self.counts)


@dataclass
class Histogram:
    """Dense, gap-free histogram over the filtered event set."""

    start_ts_ms: int | None
    end_ts_ms: int | None
    bucket_width_ms: int
    buckets: list[HistogramBucket] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "Histogram":
        return cls(start_ts_ms=None, end_ts_ms=None, bucket_width_ms=0, buckets=[])

    @property
    def has_data(self) -> bool:
        return (
            self.start_ts_ms is not None
            and self.end_ts_ms is not None
            and len(self.buckets) > 0
        )
