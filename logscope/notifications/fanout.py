"""Fan-out of backend notifications into reload callbacks."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..config import STATUS_POLL_INTERVAL_SECONDS
from ..logging_config import get_logger
from ..models import (
    ClientError,
    ClientStatusChanged,
    IncomingClientsUpdated,
    Notification,
    ServersUpdated,
    SettingsUpdated,
)
from .bus import INotificationBus
from .subscriptions import SubscriptionSet

logger = get_logger(__name__)


Reload = Callable[[], Awaitable[None]]

# Status actions that end a pending toggle/restart in the UI
SETTLING_ACTIONS = frozenset({"connected", "disable", "error"})


@dataclass
class ReloadCallbacks:
    """Reload functions owned by sibling state holders."""

    load_servers: Reload
    load_active: Reload
    load_settings: Reload
    load_mcp_url: Reload
    load_client_status: Reload
    load_incoming_clients: Reload | None = None
    set_toggle_error: Callable[[str, str | None], None] | None = None
    clear_toggle_loading: Callable[[str], None] | None = None
    clear_restart_loading: Callable[[str], None] | None = None


class EventSubscriptionFanout:
    """Single subscription point for change notifications.

    Listeners are registered once for the lifetime of the fan-out; the
    callbacks they invoke are read through ``self._callbacks`` at delivery
    time, so ``update_callbacks`` never re-subscribes. A periodic poll of the
    client status backs up missed notifications.
    """

    def __init__(
        self,
        bus: INotificationBus,
        callbacks: ReloadCallbacks,
        poll_interval: float = STATUS_POLL_INTERVAL_SECONDS,
    ):
        self._bus = bus
        self._callbacks = callbacks
        self._poll_interval = poll_interval
        self._subscriptions = SubscriptionSet(bus, owner="fanout")
        self._poll_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()
        self._ticking = False
        self._started = False
        self._closed = False

    @property
    def subscriptions(self) -> SubscriptionSet:
        return self._subscriptions

    @property
    def callbacks(self) -> ReloadCallbacks:
        return self._callbacks

    def update_callbacks(self, callbacks: ReloadCallbacks) -> None:
        """Swap in the latest callbacks without touching the subscriptions."""
        self._callbacks = callbacks

    async def start(self) -> None:
        """Register every listener and start the safety-net poll."""
        if self._started or self._closed:
            return
        self._started = True

        self._subscriptions.add(Notification.SERVERS_UPDATED, self._on_servers_updated)
        self._subscriptions.add(Notification.SETTINGS_UPDATED, self._on_settings_updated)
        self._subscriptions.add(
            Notification.CLIENT_STATUS_CHANGED, self._on_client_status_changed
        )
        self._subscriptions.add(Notification.CLIENT_ERROR, self._on_client_error)
        self._subscriptions.add(
            Notification.INCOMING_CLIENTS_UPDATED, self._on_incoming_clients_updated
        )

        self._poll_task = asyncio.create_task(self._poll_loop(), name="fanout:poll")
        logger.info(
            "Notification fan-out started",
            extra={"context": {"poll_interval": self._poll_interval}},
        )

    async def close(self) -> None:
        """Unregister all listeners and stop the poll (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._subscriptions.close()

        tasks = [t for t in (self._poll_task, *self._tick_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        logger.info("Notification fan-out stopped")

    # Notification handlers

    async def _on_servers_updated(self, event: ServersUpdated) -> None:
        if self._closed:
            return
        logger.debug("servers updated: %s", event.reason)
        cb = self._callbacks
        await cb.load_servers()
        await cb.load_active()
        await cb.load_client_status()

    async def _on_settings_updated(self, event: SettingsUpdated) -> None:
        if self._closed:
            return
        logger.debug("settings updated: %s", event.reason)
        cb = self._callbacks
        await cb.load_settings()
        await cb.load_mcp_url()
        await cb.load_servers()
        await cb.load_client_status()

    async def _on_client_status_changed(self, event: ClientStatusChanged) -> None:
        if self._closed:
            return
        cb = self._callbacks
        await cb.load_client_status()
        if event.server_name and event.action.lower() in SETTLING_ACTIONS:
            if cb.clear_toggle_loading:
                cb.clear_toggle_loading(event.server_name)
            if cb.clear_restart_loading:
                cb.clear_restart_loading(event.server_name)

    async def _on_client_error(self, event: ClientError) -> None:
        if self._closed or not event.server_name:
            return
        cb = self._callbacks
        if cb.set_toggle_error:
            cb.set_toggle_error(event.server_name, f"{event.action} failed: {event.error}")
        await cb.load_client_status()

    async def _on_incoming_clients_updated(self, event: IncomingClientsUpdated) -> None:
        if self._closed:
            return
        cb = self._callbacks
        if cb.load_incoming_clients:
            await cb.load_incoming_clients()

    # Safety-net poll

    async def tick(self) -> bool:
        """Reload client status once; returns False if a tick is already running."""
        if self._ticking:
            logger.debug("Status poll still in flight; skipping tick")
            return False
        self._ticking = True
        try:
            if not self._closed:
                await self._callbacks.load_client_status()
        finally:
            self._ticking = False
        return True

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self._guarded_tick(), name="fanout:tick")
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _guarded_tick(self) -> None:
        try:
            await self.tick()
        except Exception:
            logger.warning("Client status poll failed", exc_info=True)

    async def _poll_loop(self) -> None:
        # Ticks run as their own tasks; tick() skips overlapping ones.
        self._spawn_tick()
        while not self._closed:
            await asyncio.sleep(self._poll_interval)
            if self._closed:
                break
            self._spawn_tick()
