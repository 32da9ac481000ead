"""Paginated event window merged with the live event stream."""

from typing import Any

from ..config import DEFAULT_PAGE_SIZE
from ..logging_config import get_logger
from ..models import UNSET, Cursor, EventQuery, EventRow, LogFilter, Notification, VisibleRange
from ..notifications import INotificationBus, SubscriptionSet
from ..storage import IEventStore

logger = get_logger(__name__)


def _sort_key(row: EventRow) -> tuple[int, str]:
    return (row.ts_ms, row.id)


class LiveStreamReconciler:
    """A growable, filterable, duplicate-free list of events, newest first.

    Pages come from the store through a ``(ts_ms, id)`` cursor; events pushed on
    the live channel are merged at the head when they match the filter that
    is active when they arrive.
    """

    def __init__(
        self,
        store: IEventStore,
        bus: INotificationBus,
        *,
        server: str | None = None,
        method: str | None = None,
        ok: bool | None = None,
        time_range: VisibleRange | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self._store = store
        self._page_size = page_size
        self._filter = LogFilter().patched(
            server=server, method=method, ok=ok, time_range=time_range
        )
        self._subscriptions = SubscriptionSet(bus, owner="live_stream")

        self._items: list[EventRow] = []
        self._ids: set[str] = set()
        self._has_more = True
        self._loading = False
        # Bumped by reset(); pages fetched for an older generation are dropped
        self._generation = 0
        self._started = False
        self._closed = False

    @property
    def items(self) -> list[EventRow]:
        return list(self._items)

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def filter(self) -> LogFilter:
        return self._filter

    @property
    def cursor(self) -> Cursor | None:
        return self._items[-1].cursor if self._items else None

    @property
    def subscriptions(self) -> SubscriptionSet:
        return self._subscriptions

    async def start(self) -> None:
        """Subscribe to live events for the lifetime of this reconciler."""
        if self._started or self._closed:
            return
        self._started = True
        self._subscriptions.add(Notification.RPC_EVENT, self._on_rpc_event)

    async def close(self) -> None:
        """Unregister the live listener (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._subscriptions.close()

    def _build_query(self, with_cursor: bool) -> EventQuery:
        f = self._filter
        return EventQuery(
            server=f.server,
            method=f.method,
            ok=f.ok,
            start_ts_ms=int(f.time_range.start) if f.time_range else None,
            end_ts_ms=int(f.time_range.end) if f.time_range else None,
            after=self.cursor if with_cursor else None,
            limit=self._page_size,
        )

    async def load_more(self, *, reset: bool = False) -> None:
        """Fetch the next page; with ``reset`` the page replaces the list."""
        if not reset and (self._loading or not self._has_more):
            return

        generation = self._generation
        query = self._build_query(with_cursor=not reset)
        self._loading = True
        try:
            page = await self._store.query_events(query)
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            logger.debug("Dropping page fetched for a superseded filter")
            return

        if reset:
            self._items = []
            self._ids = set()
        for row in page:
            if row.id not in self._ids:
                self._items.append(row)
                self._ids.add(row.id)
        self._has_more = len(page) >= self._page_size

    async def reset(
        self,
        *,
        server: Any = UNSET,
        method: Any = UNSET,
        ok: Any = UNSET,
        time_range: Any = UNSET,
    ) -> None:
        """Clear the list, apply the passed filter fields, load the first page.

        Fields that are not passed keep their current value; passing None
        clears that filter.
        """
        self._generation += 1
        self._items = []
        self._ids = set()
        self._has_more = True
        self._filter = self._filter.patched(
            server=server, method=method, ok=ok, time_range=time_range
        )
        logger.debug(
            "Resetting live stream",
            extra={
                "context": {
                    "server": self._filter.server,
                    "method": self._filter.method,
                    "ok": self._filter.ok,
                    "time_range": self._filter.time_range,
                }
            },
        )
        await self.load_more(reset=True)

    async def _on_rpc_event(self, row: EventRow) -> None:
        if self._closed:
            return
        # Filter as of delivery time, not subscription time
        if not self._filter.matches(row):
            return
        if row.id in self._ids:
            return

        key = _sort_key(row)
        if self._items and self._has_more and key < _sort_key(self._items[-1]):
            # Older than the loaded window; pagination will reach it
            return

        idx = 0
        while idx < len(self._items) and _sort_key(self._items[idx]) > key:
            idx += 1
        self._items.insert(idx, row)
        self._ids.add(row.id)
