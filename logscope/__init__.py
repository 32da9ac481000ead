"""Event observability for the proxy's RPC event log."""

from .app import Application, IApplication
from .logs import (
    ChartViewport,
    HistogramRangeSync,
    LiveStreamReconciler,
    LogsSession,
    SyncState,
)
from .models import (
    Cursor,
    EventQuery,
    EventRow,
    Histogram,
    HistogramBucket,
    HistogramQuery,
    LogFilter,
    MethodCount,
    Notification,
    SessionRecord,
    VisibleRange,
)
from .notifications import (
    EventSubscriptionFanout,
    INotificationBus,
    NotificationBus,
    ReloadCallbacks,
)
from .storage import EventStore, IEventStore, StoreUnavailableError

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Cursor",
    "EventRow",
    "SessionRecord",
    "EventQuery",
    "HistogramQuery",
    "Histogram",
    "HistogramBucket",
    "MethodCount",
    "LogFilter",
    "VisibleRange",
    "Notification",
    # Components
    "IEventStore",
    "EventStore",
    "StoreUnavailableError",
    "INotificationBus",
    "NotificationBus",
    "EventSubscriptionFanout",
    "ReloadCallbacks",
    "LiveStreamReconciler",
    "HistogramRangeSync",
    "SyncState",
    "LogsSession",
    "ChartViewport",
]
