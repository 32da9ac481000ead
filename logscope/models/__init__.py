"""Core data models for logscope."""

from .events import (
    Cursor,
    EventQuery,
    EventRow,
    Histogram,
    HistogramBucket,
    HistogramQuery,
    MethodCount,
    SessionRecord,
)
from .filters import UNSET, LogFilter
from .notifications import (
    ClientError,
    ClientStatusChanged,
    IncomingClientsUpdated,
    Notification,
    ServersUpdated,
    SettingsUpdated,
)
from .ranges import RANGE_TOLERANCE_MS, VisibleRange

__all__ = [
    # Events
    "Cursor",
    "EventRow",
    "SessionRecord",
    "EventQuery",
    # Histogram
    "HistogramQuery",
    "Histogram",
    "HistogramBucket",
    "MethodCount",
    # View state
    "LogFilter",
    "UNSET",
    "VisibleRange",
    "RANGE_TOLERANCE_MS",
    # Notifications
    "Notification",
    "ServersUpdated",
    "SettingsUpdated",
    "IncomingClientsUpdated",
    "ClientStatusChanged",
    "ClientError",
]
