"""Chart option building and a headless zoomable chart viewport."""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from ..models import Histogram

METHOD_CATEGORIES: tuple[str, ...] = ("initialize", "listTools", "callTool", "other")

ZoomHandler = Callable[[Mapping[str, Any]], None]


def categorize_method(method: str) -> str:
    """Map an RPC method onto one of the stacked series."""
    return method if method in METHOD_CATEGORIES[:-1] else "other"


def build_chart_option(histogram: Histogram | None) -> dict[str, Any] | None:
    """Stacked per-category bar series for a histogram; None without data."""
    if histogram is None or not histogram.has_data:
        return None

    points: dict[str, list[dict[str, Any]]] = {c: [] for c in METHOD_CATEGORIES}
    for bucket in histogram.buckets:
        aggregated = dict.fromkeys(METHOD_CATEGORIES, 0)
        for count in bucket.counts:
            aggregated[categorize_method(count.method)] += count.count
        for category in METHOD_CATEGORIES:
            points[category].append(
                {
                    "value": [bucket.start_ts_ms, aggregated[category]],
                    "bucketStart": bucket.start_ts_ms,
                    "bucketEnd": bucket.end_ts_ms,
                }
            )

    return {
        "legend": {"data": list(METHOD_CATEGORIES)},
        "xAxis": {
            "type": "time",
            "min": histogram.start_ts_ms,
            "max": histogram.end_ts_ms,
        },
        "yAxis": {"type": "value", "min": 0},
        "dataZoom": [
            {"type": "inside", "filterMode": "weakFilter"},
            {"type": "slider", "filterMode": "weakFilter"},
        ],
        "series": [
            {
                "name": category,
                "type": "bar",
                "stack": "total",
                "data": points[category],
            }
            for category in METHOD_CATEGORIES
        ],
    }


@dataclass(frozen=True)
class ZoomWindow:
    """Raw zoom payload: absolute values and/or percentages of the domain."""

    start_value: float | None = None
    end_value: float | None = None
    start: float | None = None
    end: float | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "ZoomWindow | None":
        """Read a chart zoom event, unwrapping a ``batch`` list if present."""
        if not payload:
            return None
        batch = payload.get("batch")
        if isinstance(batch, list) and batch:
            payload = batch[0]
            if not isinstance(payload, Mapping):
                return None

        def number(key: str) -> float | None:
            value = payload.get(key)
            if value is None:
                return None
            try:
                return float(value)
            except (TypeError, ValueError):
                return math.nan

        return cls(
            start_value=number("startValue"),
            end_value=number("endValue"),
            start=number("start"),
            end=number("end"),
        )

    def resolve(self, domain_start: float, domain_end: float) -> tuple[float, float]:
        """Absolute ``(start, end)``; absolute values win over percentages."""
        span = max(domain_end - domain_start, 1)

        def pick(value: float | None, percent: float | None, default: float) -> float:
            if value is not None:
                return value
            if percent is not None:
                return domain_start + (percent / 100) * span
            return default

        return (
            pick(self.start_value, self.start, domain_start),
            pick(self.end_value, self.end, domain_end),
        )


class ZoomableChart(Protocol):
    """What the range sync needs from a chart."""

    def set_option(self, option: dict[str, Any] | None) -> None:
        """Replace the chart data; resets zoom to the full domain."""
        ...

    def dispatch_zoom(
        self,
        *,
        start_value: float | None = None,
        end_value: float | None = None,
        start: float | None = None,
        end: float | None = None,
    ) -> None:
        """Programmatically set the zoom window."""
        ...

    def on_zoom(self, handler: ZoomHandler) -> Callable[[], None]:
        """Register a zoom listener; returns a function that removes it."""
        ...


class ChartViewport:
    """Headless chart: holds the option and the zoom window.

    Every zoom change, programmatic or user-driven, is reported to the zoom
    listeners synchronously, as interactive charting libraries do.
    """

    def __init__(self) -> None:
        self._option: dict[str, Any] | None = None
        self._domain: tuple[float, float] | None = None
        self._window: tuple[float, float] | None = None
        self._handlers: list[ZoomHandler] = []

    @property
    def option(self) -> dict[str, Any] | None:
        return self._option

    @property
    def effective_range(self) -> tuple[float, float] | None:
        """Current zoom window in absolute milliseconds."""
        return self._window

    def set_option(self, option: dict[str, Any] | None) -> None:
        self._option = option
        if option is None:
            self._domain = None
            self._window = None
            return
        x_axis = option["xAxis"]
        self._domain = (float(x_axis["min"]), float(x_axis["max"]))
        self._window = self._domain

    def on_zoom(self, handler: ZoomHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def remove() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return remove

    def dispatch_zoom(
        self,
        *,
        start_value: float | None = None,
        end_value: float | None = None,
        start: float | None = None,
        end: float | None = None,
    ) -> None:
        payload = {
            key: value
            for key, value in (
                ("startValue", start_value),
                ("endValue", end_value),
                ("start", start),
                ("end", end),
            )
            if value is not None
        }
        self._zoom(payload)

    def user_zoom(self, payload: Mapping[str, Any]) -> None:
        """Apply a zoom gesture payload as the user would produce it."""
        self._zoom(payload)

    def _zoom(self, payload: Mapping[str, Any]) -> None:
        if self._domain is not None:
            window = ZoomWindow.from_payload(payload)
            if window is not None:
                lo, hi = window.resolve(*self._domain)
                if math.isfinite(lo) and math.isfinite(hi):
                    self._window = (min(lo, hi), max(lo, hi))
        for handler in list(self._handlers):
            handler(payload)
