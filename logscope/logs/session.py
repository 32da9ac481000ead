"""Logs view: filter bar, histogram and event list wired together."""

from typing import Any

from ..config import (
    DEFAULT_MAX_BUCKETS,
    DEFAULT_PAGE_SIZE,
    HISTOGRAM_REFRESH_SECONDS,
    RANGE_DEBOUNCE_SECONDS,
)
from ..logging_config import get_logger
from ..models import UNSET, VisibleRange
from ..notifications import INotificationBus
from ..storage import IEventStore
from .chart import ZoomableChart
from .histogram_sync import HistogramRangeSync
from .reconciler import LiveStreamReconciler

logger = get_logger(__name__)


class LogsSession:
    """Owns one reconciler and one histogram sync sharing a filter."""

    def __init__(
        self,
        store: IEventStore,
        bus: INotificationBus,
        chart: ZoomableChart,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_buckets: int = DEFAULT_MAX_BUCKETS,
        debounce_seconds: float = RANGE_DEBOUNCE_SECONDS,
        refresh_delay_seconds: float = HISTOGRAM_REFRESH_SECONDS,
    ):
        self._store = store
        self.stream = LiveStreamReconciler(store, bus, page_size=page_size)
        self.histogram = HistogramRangeSync(
            store,
            bus,
            chart,
            self.set_range,
            max_buckets=max_buckets,
            debounce_seconds=debounce_seconds,
            refresh_delay_seconds=refresh_delay_seconds,
        )
        self._count: int | None = None

    @property
    def count(self) -> int | None:
        """Display count for the selected server; None when unavailable."""
        return self._count

    @property
    def time_range(self) -> VisibleRange | None:
        return self.stream.filter.time_range

    async def start(self) -> None:
        await self.stream.start()
        await self.histogram.start()
        await self.stream.reset()
        await self.refresh_count()

    async def close(self) -> None:
        await self.histogram.close()
        await self.stream.close()

    async def refresh_count(self) -> int | None:
        try:
            self._count = await self._store.count_events(self.stream.filter.server)
        except Exception:
            logger.warning("Event count unavailable", exc_info=True)
            self._count = None
        return self._count

    async def set_filter(
        self, *, server: Any = UNSET, method: Any = UNSET, ok: Any = UNSET
    ) -> None:
        """Apply filter bar changes to the list and the histogram."""
        previous_server = self.stream.filter.server
        await self.stream.reset(server=server, method=method, ok=ok)
        f = self.stream.filter
        await self.histogram.set_filter(server=f.server, method=f.method, ok=f.ok)
        if f.server != previous_server:
            await self.refresh_count()

    async def set_range(self, time_range: VisibleRange | None) -> None:
        """Select a time window; ranges spanning the whole domain clear it."""
        normalized = time_range.normalized() if time_range is not None else None
        if time_range is not None and normalized is None:
            return

        data = self.histogram.data
        if (
            normalized is not None
            and data is not None
            and data.start_ts_ms is not None
            and data.end_ts_ms is not None
            and normalized.covers_domain(
                data.start_ts_ms, data.end_ts_ms, data.bucket_width_ms
            )
        ):
            normalized = None

        current = self.time_range
        if normalized is not None:
            if normalized.approx_equals(current):
                return
        elif current is None:
            return

        await self.stream.reset(time_range=normalized)
        self.histogram.apply_external_range(normalized)
