"""In-process notification channel for backend change notifications."""

import asyncio
from typing import Any, Awaitable, Callable, Protocol

from pydantic import ValidationError

from ..logging_config import get_logger
from ..models import Notification
from .payloads import parse_notification

logger = get_logger(__name__)


NotificationHandler = Callable[[Any], Awaitable[None]]
Unlisten = Callable[[], None]


class INotificationBus(Protocol):
    """Named, typed notification channels."""

    async def listen(self, name: Notification, handler: NotificationHandler) -> Unlisten:
        """Register a handler; resolves to a function that unregisters it."""
        ...

    async def emit(self, name: Notification, payload: Any) -> None:
        """Validate payload and deliver it to every handler of ``name``."""
        ...


def safe_unlisten(unlisten: Unlisten | None) -> None:
    """Unregister, tolerating handles that were already released."""
    if unlisten is None:
        return
    try:
        unlisten()
    except Exception:
        logger.debug("Ignoring failure while unregistering listener", exc_info=True)


class NotificationBus:
    """In-memory pub/sub keyed by notification name.

    Payloads are validated at this boundary; malformed ones are logged and
    dropped so handlers only ever see the typed models.
    """

    def __init__(self) -> None:
        self._handlers: dict[Notification, list[NotificationHandler]] = {
            name: [] for name in Notification
        }

    def listener_count(self, name: Notification) -> int:
        return len(self._handlers[name])

    async def listen(self, name: Notification, handler: NotificationHandler) -> Unlisten:
        """Register a handler; resolves to a function that unregisters it."""
        handlers = self._handlers[Notification(name)]
        handlers.append(handler)

        def unlisten() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unlisten

    async def emit(self, name: Notification, payload: Any) -> None:
        """Validate payload and deliver it to every handler of ``name``."""
        name = Notification(name)
        try:
            event = parse_notification(name, payload)
        except ValidationError as e:
            logger.warning(
                "Dropping malformed %s notification: %s",
                name.value,
                e.errors(include_url=False),
            )
            return

        # Snapshot: handlers may unregister while we are delivering
        handlers = list(self._handlers[name])
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in %s handler %s: %s",
                    name.value,
                    i,
                    result,
                    exc_info=result,
                )
