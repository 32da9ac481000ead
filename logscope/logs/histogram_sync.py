"""Histogram data and loop-free range synchronization with a zoomable chart."""

import asyncio
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Awaitable, Callable

from ..config import DEFAULT_MAX_BUCKETS, HISTOGRAM_REFRESH_SECONDS, RANGE_DEBOUNCE_SECONDS
from ..logging_config import get_logger
from ..models import EventRow, Histogram, HistogramQuery, LogFilter, Notification, VisibleRange
from ..notifications import INotificationBus, SubscriptionSet
from ..storage import IEventStore
from .chart import ZoomableChart, ZoomWindow, build_chart_option

logger = get_logger(__name__)


RangeChangeHandler = Callable[[VisibleRange | None], Awaitable[None]]


class SyncState(str, Enum):
    """Who is driving the selected range right now."""

    IDLE = "idle"
    USER_ZOOMING = "user_zooming"
    PENDING_EMIT = "pending_emit"
    EXTERNAL_APPLY = "external_apply"


class HistogramRangeSync:
    """Keeps a chart's zoom and the caller's selected range in step.

    User gestures flow chart -> debounce -> ``on_range_change``. Externally
    supplied ranges flow caller -> chart with a one-shot suppression so the
    chart's echo of that change is not reported back as a gesture.
    """

    def __init__(
        self,
        store: IEventStore,
        bus: INotificationBus,
        chart: ZoomableChart,
        on_range_change: RangeChangeHandler | None = None,
        *,
        server: str | None = None,
        method: str | None = None,
        ok: bool | None = None,
        max_buckets: int = DEFAULT_MAX_BUCKETS,
        debounce_seconds: float = RANGE_DEBOUNCE_SECONDS,
        refresh_delay_seconds: float = HISTOGRAM_REFRESH_SECONDS,
    ):
        self._store = store
        self._chart = chart
        self._on_range_change = on_range_change
        self._filter = LogFilter(server=server, method=method, ok=ok)
        self._max_buckets = max_buckets
        self._debounce = debounce_seconds
        self._refresh_delay = refresh_delay_seconds

        self._subscriptions = SubscriptionSet(bus, owner="histogram")
        self._remove_zoom_handler: Callable[[], None] | None = None

        self._data: Histogram | None = None
        self._option: dict[str, Any] | None = None
        self._loading = False
        self._error: Exception | None = None

        self._state = SyncState.IDLE
        self._suppress_next = False
        self._external_range: VisibleRange | None = None
        self._pending: VisibleRange | None = None
        self._last_emitted: VisibleRange | None = None
        self._emit_task: asyncio.Task | None = None
        self._refresh_task: asyncio.Task | None = None
        # Bumped by every refresh; results of superseded queries are dropped
        self._generation = 0
        self._started = False
        self._closed = False

    # Read-only view state

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def data(self) -> Histogram | None:
        return self._data

    @property
    def option(self) -> dict[str, Any] | None:
        return self._option

    @property
    def has_data(self) -> bool:
        return self._data is not None and self._data.has_data

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def filter(self) -> LogFilter:
        return self._filter

    @property
    def last_emitted(self) -> VisibleRange | None:
        return self._last_emitted

    @property
    def subscriptions(self) -> SubscriptionSet:
        return self._subscriptions

    # Lifecycle

    async def start(self) -> None:
        """Attach to the chart, subscribe to live events, load the histogram."""
        if self._started or self._closed:
            return
        self._started = True
        self._remove_zoom_handler = self._chart.on_zoom(self.handle_zoom)
        self._subscriptions.add(Notification.RPC_EVENT, self._on_rpc_event)
        await self.refresh()

    async def close(self) -> None:
        """Detach from the chart and cancel timers (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._subscriptions.close()
        if self._remove_zoom_handler:
            self._remove_zoom_handler()
            self._remove_zoom_handler = None

        tasks = [t for t in (self._emit_task, self._refresh_task) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._emit_task = None
        self._refresh_task = None
        self._pending = None
        self._state = SyncState.IDLE

    # Data

    async def refresh(self) -> Histogram:
        """Reload the histogram for the current filter and redraw the chart.

        A refresh started later supersedes this one: its result, or its
        failure, is returned or raised without touching the view state.
        """
        query = HistogramQuery(
            server=self._filter.server,
            method=self._filter.method,
            ok=self._filter.ok,
            max_buckets=self._max_buckets,
        )
        self._generation += 1
        generation = self._generation
        self._loading = True
        try:
            data = await self._store.query_event_histogram(query)
        except Exception as e:
            if generation == self._generation:
                self._data = None
                self._option = None
                self._error = e
            raise
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            logger.debug("Dropping histogram fetched for a superseded filter")
            return data

        self._error = None
        if self._closed:
            return data

        self._data = data
        self._option = build_chart_option(data)
        self._chart.set_option(self._option)
        self._apply_to_chart()
        return data

    async def set_filter(
        self, server: str | None = None, method: str | None = None, ok: bool | None = None
    ) -> None:
        """Change the histogram filter and reload."""
        self._filter = LogFilter(server=server, method=method, ok=ok)
        await self.refresh()

    async def _on_rpc_event(self, row: EventRow) -> None:
        if self._closed or not self._filter.matches(row):
            return
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        # Coalesce bursts of live events into one reload
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.create_task(
            self._delayed_refresh(), name="histogram:refresh"
        )

    async def _delayed_refresh(self) -> None:
        await asyncio.sleep(self._refresh_delay)
        self._refresh_task = None
        if self._closed:
            return
        try:
            await self.refresh()
        except Exception:
            logger.warning("Histogram refresh after live event failed", exc_info=True)

    # Chart -> caller

    def handle_zoom(self, payload: Mapping[str, Any]) -> None:
        """Translate a chart zoom event into a pending range emission."""
        if self._closed:
            return
        data = self._data
        if data is None or data.start_ts_ms is None or data.end_ts_ms is None:
            return

        if self._suppress_next:
            self._suppress_next = False
            self._state = SyncState.PENDING_EMIT if self._emit_task else SyncState.IDLE
            return

        window = ZoomWindow.from_payload(payload)
        if window is None:
            return
        self._state = SyncState.USER_ZOOMING

        domain_start, domain_end = data.start_ts_ms, data.end_ts_ms
        raw_start, raw_end = window.resolve(domain_start, domain_end)
        if not (math.isfinite(raw_start) and math.isfinite(raw_end)):
            self._state = SyncState.PENDING_EMIT if self._emit_task else SyncState.IDLE
            return
        if raw_start > raw_end:
            raw_start, raw_end = raw_end, raw_start

        bucket_width = max(data.bucket_width_ms, 1)
        start = max(domain_start, raw_start)
        end = min(domain_end, raw_end)
        if end <= start:
            end = min(domain_end, start + bucket_width)

        selected = VisibleRange(start=start, end=end)
        if selected.covers_domain(domain_start, domain_end, bucket_width):
            self._schedule_emit(None)
        else:
            self._schedule_emit(selected)

    def _schedule_emit(self, value: VisibleRange | None) -> None:
        if self._on_range_change is None:
            self._state = SyncState.IDLE
            return
        if self._emit_task is not None:
            self._emit_task.cancel()
        self._pending = value
        self._state = SyncState.PENDING_EMIT
        self._emit_task = asyncio.create_task(
            self._emit_after_debounce(), name="histogram:emit-range"
        )

    async def _emit_after_debounce(self) -> None:
        await asyncio.sleep(self._debounce)
        value = self._pending
        self._pending = None
        self._emit_task = None
        self._state = SyncState.IDLE
        if self._closed or self._on_range_change is None:
            return

        if value is not None:
            if value.approx_equals(self._last_emitted):
                return
        elif self._last_emitted is None:
            return

        self._last_emitted = value
        try:
            await self._on_range_change(value)
        except Exception:
            logger.error("Range change handler failed", exc_info=True)

    # Caller -> chart

    def apply_external_range(self, time_range: VisibleRange | None) -> None:
        """Show a range chosen elsewhere without reporting it back."""
        if self._closed:
            return
        self._external_range = time_range
        self._last_emitted = time_range
        self._apply_to_chart()

    def reset_view(self) -> None:
        """Zoom out to the full domain and report a cleared selection."""
        if self._closed:
            return
        if self.has_data:
            self._suppress_next = True
            self._state = SyncState.EXTERNAL_APPLY
            self._chart.dispatch_zoom(start=0, end=100)
        self._schedule_emit(None)

    def _apply_to_chart(self) -> None:
        if not self.has_data:
            return
        time_range = self._external_range
        if time_range is not None and time_range.end > time_range.start:
            self._suppress_next = True
            self._state = SyncState.EXTERNAL_APPLY
            self._chart.dispatch_zoom(start_value=time_range.start, end_value=time_range.end)
        elif time_range is None:
            self._suppress_next = True
            self._state = SyncState.EXTERNAL_APPLY
            self._chart.dispatch_zoom(start=0, end=100)
