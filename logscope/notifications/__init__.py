"""Notifications module."""

from .bus import (
    INotificationBus,
    NotificationBus,
    NotificationHandler,
    Unlisten,
    safe_unlisten,
)
from .fanout import EventSubscriptionFanout, ReloadCallbacks
from .payloads import RpcEventPayload, parse_notification
from .subscriptions import SubscriptionSet

__all__ = [
    "INotificationBus",
    "NotificationBus",
    "NotificationHandler",
    "Unlisten",
    "safe_unlisten",
    "SubscriptionSet",
    "EventSubscriptionFanout",
    "ReloadCallbacks",
    "RpcEventPayload",
    "parse_notification",
]
