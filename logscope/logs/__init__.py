"""Logs view state module."""

from .chart import (
    METHOD_CATEGORIES,
    ChartViewport,
    ZoomableChart,
    ZoomWindow,
    build_chart_option,
    categorize_method,
)
from .histogram_sync import HistogramRangeSync, RangeChangeHandler, SyncState
from .reconciler import LiveStreamReconciler
from .session import LogsSession

__all__ = [
    "LiveStreamReconciler",
    "HistogramRangeSync",
    "RangeChangeHandler",
    "SyncState",
    "LogsSession",
    "ChartViewport",
    "ZoomableChart",
    "ZoomWindow",
    "build_chart_option",
    "categorize_method",
    "METHOD_CATEGORIES",
]
