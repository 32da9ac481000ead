"""Tests for SubscriptionSet."""

import asyncio

from logscope.models import Notification
from logscope.notifications import SubscriptionSet


async def _noop(event):
    pass


class FailingBus:
    """Bus whose registration fails for one channel."""

    def __init__(self, inner, broken: Notification):
        self.inner = inner
        self.broken = broken

    async def listen(self, name, handler):
        if name == self.broken:
            raise ConnectionError("channel unavailable")
        return await self.inner.listen(name, handler)

    async def emit(self, name, payload):
        await self.inner.emit(name, payload)


class TestSubscriptionSet:
    """Tests for registration and release."""

    async def test_registers_and_closes(self, bus):
        subs = SubscriptionSet(bus, owner="test")
        subs.add(Notification.SERVERS_UPDATED, _noop)
        subs.add(Notification.RPC_EVENT, _noop)
        await subs.wait_registered()

        assert subs.active_count == 2
        assert bus.listener_count(Notification.RPC_EVENT) == 1

        subs.close()
        assert subs.cancelled
        assert subs.active_count == 0
        assert bus.listener_count(Notification.RPC_EVENT) == 0
        assert bus.listener_count(Notification.SERVERS_UPDATED) == 0

    async def test_close_is_idempotent(self, bus):
        subs = SubscriptionSet(bus, owner="test")
        subs.add(Notification.RPC_EVENT, _noop)
        await subs.wait_registered()

        subs.close()
        subs.close()
        assert bus.listener_count(Notification.RPC_EVENT) == 0

    async def test_close_before_registration_resolves(self, gated_bus, bus):
        """Test that a registration resolving after close is released at once."""
        subs = SubscriptionSet(gated_bus, owner="test")
        subs.add(Notification.RPC_EVENT, _noop)
        await asyncio.sleep(0)

        subs.close()
        gated_bus.gate.set()
        await subs.wait_registered()

        assert bus.listener_count(Notification.RPC_EVENT) == 0
        assert subs.active_count == 0

    async def test_registration_failure_isolated(self, bus, caplog):
        """Test that a failed channel is logged and the others still work."""
        failing = FailingBus(bus, broken=Notification.CLIENT_ERROR)
        subs = SubscriptionSet(failing, owner="test")
        subs.add(Notification.CLIENT_ERROR, _noop)
        subs.add(Notification.SERVERS_UPDATED, _noop)
        await subs.wait_registered()

        assert subs.active_count == 1
        assert bus.listener_count(Notification.SERVERS_UPDATED) == 1
        assert "registration failed" in caplog.text

    async def test_wait_registered_without_pending(self, bus):
        subs = SubscriptionSet(bus, owner="test")
        await subs.wait_registered()
        assert subs.active_count == 0
