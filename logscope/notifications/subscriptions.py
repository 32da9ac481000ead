"""Listener registrations owned by one component."""

import asyncio

from ..logging_config import get_logger
from ..models import Notification
from .bus import INotificationBus, NotificationHandler, Unlisten, safe_unlisten

logger = get_logger(__name__)


class SubscriptionSet:
    """Registers listeners asynchronously and releases them exactly once.

    ``close()`` may run before a registration has resolved. The pending
    registration is not cancelled; when it resolves it sees the cancelled
    flag and unregisters immediately, so no listener outlives its owner.
    A registration that fails is logged and the channel is treated as absent.
    """

    def __init__(self, bus: INotificationBus, owner: str):
        self._bus = bus
        self._owner = owner
        self._unlistens: list[Unlisten] = []
        self._pending: set[asyncio.Task] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active_count(self) -> int:
        return len(self._unlistens)

    def add(self, name: Notification, handler: NotificationHandler) -> asyncio.Task:
        """Start registering ``handler``; returns the registration task."""
        task = asyncio.create_task(
            self._register(name, handler),
            name=f"{self._owner}:listen:{Notification(name).value}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _register(self, name: Notification, handler: NotificationHandler) -> None:
        try:
            unlisten = await self._bus.listen(name, handler)
        except Exception:
            logger.warning(
                "Listener registration failed; %s channel unavailable for %s",
                Notification(name).value,
                self._owner,
                exc_info=True,
            )
            return

        if self._cancelled:
            logger.debug(
                "Owner %s closed before %s registration resolved; releasing",
                self._owner,
                Notification(name).value,
            )
            safe_unlisten(unlisten)
            return

        self._unlistens.append(unlisten)

    async def wait_registered(self) -> None:
        """Wait until every registration started so far has resolved."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def close(self) -> None:
        """Release all listeners (idempotent)."""
        if self._cancelled:
            return
        self._cancelled = True
        while self._unlistens:
            safe_unlisten(self._unlistens.pop())
