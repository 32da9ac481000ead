"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .config import Settings, resolve_db_path
from .logging_config import get_logger
from .logs import ChartViewport, LogsSession, ZoomableChart
from .notifications import (
    EventSubscriptionFanout,
    INotificationBus,
    NotificationBus,
    ReloadCallbacks,
)
from .storage import EventStore, IEventStore

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    @property
    def store(self) -> IEventStore:
        """Event store handle."""
        ...

    @property
    def bus(self) -> INotificationBus:
        """Notification bus handle."""
        ...


class Application:
    """Constructs the shared store and bus and hands them to view-state holders."""

    def __init__(self, db_path: str | None = None, settings: Settings | None = None):
        self._settings = settings or Settings.from_env()
        env_db_path = self._settings.database_url if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)

        # Components (will be initialized in start())
        self._store: EventStore | None = None
        self._bus: NotificationBus | None = None
        self._sessions: list[LogsSession] = []
        self._fanouts: list[EventSubscriptionFanout] = []

    @property
    def settings(self) -> Settings:
        return self._settings

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Store (no dependencies)
        self._store = EventStore(self._db_path)
        await self._store.ensure_initialized()

        # 2. Notification bus (no dependencies)
        self._bus = NotificationBus()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        for fanout in reversed(self._fanouts):
            await fanout.close()
        self._fanouts.clear()
        for session in reversed(self._sessions):
            await session.close()
        self._sessions.clear()
        if self._store:
            await self._store.close()
            logger.info("Event store closed")

    async def open_logs_session(
        self, chart: ZoomableChart | None = None
    ) -> LogsSession:
        """Create and start a logs view bound to ``chart``."""
        s = self._settings
        session = LogsSession(
            self.store,
            self.bus,
            chart or ChartViewport(),
            page_size=s.page_size,
            max_buckets=s.max_buckets,
            debounce_seconds=s.range_debounce_seconds,
            refresh_delay_seconds=s.histogram_refresh_seconds,
        )
        self._sessions.append(session)
        await session.start()
        return session

    async def open_fanout(self, callbacks: ReloadCallbacks) -> EventSubscriptionFanout:
        """Create and start a notification fan-out for ``callbacks``."""
        fanout = EventSubscriptionFanout(
            self.bus,
            callbacks,
            poll_interval=self._settings.status_poll_interval_seconds,
        )
        self._fanouts.append(fanout)
        await fanout.start()
        return fanout

    @property
    def store(self) -> EventStore:
        """Get store instance."""
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def bus(self) -> NotificationBus:
        """Get notification bus instance."""
        if not self._bus:
            raise RuntimeError("Application not started")
        return self._bus
