"""Tests for LiveStreamReconciler."""

import asyncio

import pytest
import pytest_asyncio

from logscope.logs import LiveStreamReconciler
from logscope.models import Notification, VisibleRange


class GatedStore:
    """Store wrapper that holds selected queries until released."""

    def __init__(self, inner):
        self.inner = inner
        self.hold = False
        self.release = asyncio.Event()

    async def query_events(self, query=None):
        if self.hold:
            self.hold = False
            await self.release.wait()
        return await self.inner.query_events(query)


class FailingStore:
    async def query_events(self, query=None):
        raise RuntimeError("database is locked")


@pytest_asyncio.fixture
async def seeded(writer):
    """Ten events, two servers, with timestamp ties."""
    timestamps = [1000, 2000, 2000, 3000, 4000, 4000, 4000, 5000, 6000, 7000]
    for i, ts in enumerate(timestamps):
        await writer.add(
            f"e{i}",
            ts,
            server_name="alpha" if i % 2 == 0 else "beta",
        )
    return writer


@pytest_asyncio.fixture
async def stream(store, bus, seeded):
    r = LiveStreamReconciler(store, bus, page_size=3)
    await r.start()
    await r.subscriptions.wait_registered()
    await r.reset()
    yield r
    await r.close()


def ids(reconciler):
    return [row.id for row in reconciler.items]


class TestPagination:
    """Tests for paginated loading."""

    async def test_first_page(self, stream):
        assert ids(stream) == ["e9", "e8", "e7"]
        assert stream.has_more
        assert not stream.loading

    async def test_load_until_exhausted(self, stream):
        """Test that paging yields every row once, strictly newest first."""
        while stream.has_more:
            await stream.load_more()

        keys = [(row.ts_ms, row.id) for row in stream.items]
        assert len(keys) == 10
        assert len(set(ids(stream))) == 10
        assert all(a > b for a, b in zip(keys, keys[1:]))

    async def test_load_more_after_exhausted_is_noop(self, stream, store):
        while stream.has_more:
            await stream.load_more()
        before = ids(stream)

        await stream.load_more()
        assert ids(stream) == before

    async def test_cursor_tracks_last_item(self, stream):
        assert stream.cursor.id == "e7"
        assert stream.cursor.ts_ms == 5000

    async def test_invalid_page_size(self, store, bus):
        with pytest.raises(ValueError):
            LiveStreamReconciler(store, bus, page_size=0)

    async def test_store_error_propagates(self, bus):
        r = LiveStreamReconciler(FailingStore(), bus)
        with pytest.raises(RuntimeError):
            await r.reset()
        assert not r.loading


class TestReset:
    """Tests for filter changes."""

    async def test_reset_applies_filter(self, stream):
        await stream.reset(server="alpha")
        assert all(row.server_name == "alpha" for row in stream.items)
        assert ids(stream) == ["e8", "e6", "e4"]

    async def test_reset_keeps_unpassed_fields(self, stream):
        await stream.reset(server="beta")
        await stream.reset(time_range=VisibleRange(2000, 4000))

        assert stream.filter.server == "beta"
        assert ids(stream) == ["e5", "e3", "e1"]

    async def test_reset_none_clears_field(self, stream):
        await stream.reset(server="beta")
        await stream.reset(server=None)
        assert stream.filter.server is None
        assert ids(stream) == ["e9", "e8", "e7"]

    async def test_stale_page_dropped(self, store, bus, seeded):
        """Test that a page requested under an older filter never lands."""
        gated = GatedStore(store)
        r = LiveStreamReconciler(gated, bus, page_size=3)

        gated.hold = True
        slow = asyncio.create_task(r.reset(server="alpha"))
        await asyncio.sleep(0)

        await r.reset(server="beta")
        gated.release.set()
        await slow

        assert all(row.server_name == "beta" for row in r.items)
        assert ids(r) == ["e9", "e7", "e5"]
        assert not r.loading


class TestLiveMerge:
    """Tests for merging live events."""

    async def test_new_event_at_head(self, stream, writer, bus):
        payload = await writer.add("new", 8000)
        await bus.emit(Notification.RPC_EVENT, payload)

        assert ids(stream)[0] == "new"

    async def test_duplicate_ignored(self, stream, bus, rpc_event):
        await bus.emit(Notification.RPC_EVENT, rpc_event("e9", 7000))
        assert ids(stream) == ["e9", "e8", "e7"]

    async def test_filter_applied_at_delivery_time(self, stream, writer, bus):
        """Test that an event for another server only appears after switching."""
        await stream.reset(server="beta")
        payload = await writer.add("x1", 9000, server_name="gamma")
        await bus.emit(Notification.RPC_EVENT, payload)

        assert "x1" not in ids(stream)

        await stream.reset(server="gamma")
        assert ids(stream) == ["x1"]

    async def test_live_event_uses_latest_filter(self, stream, bus, rpc_event):
        await stream.reset(method="listTools")
        await bus.emit(Notification.RPC_EVENT, rpc_event("a", 9000, method="callTool"))
        await bus.emit(Notification.RPC_EVENT, rpc_event("b", 9001, method="listTools"))

        assert ids(stream) == ["b"]

    async def test_time_range_excludes_live_event(self, stream, bus, rpc_event):
        await stream.reset(time_range=VisibleRange(1000, 3000))
        await bus.emit(Notification.RPC_EVENT, rpc_event("late", 9000))

        assert "late" not in ids(stream)

    async def test_older_event_left_to_pagination(self, stream, bus, rpc_event):
        """Test that an event below the loaded window is not spliced in."""
        assert stream.has_more
        await bus.emit(Notification.RPC_EVENT, rpc_event("old", 500))

        assert "old" not in ids(stream)

    async def test_older_event_kept_when_fully_loaded(self, stream, bus, rpc_event):
        while stream.has_more:
            await stream.load_more()

        await bus.emit(Notification.RPC_EVENT, rpc_event("mid", 4500))

        keys = [(row.ts_ms, row.id) for row in stream.items]
        assert "mid" in ids(stream)
        assert keys == sorted(keys, reverse=True)

    async def test_closed_stream_ignores_events(self, stream, bus, rpc_event):
        await stream.close()
        await bus.emit(Notification.RPC_EVENT, rpc_event("new", 9000))

        assert "new" not in ids(stream)
        assert bus.listener_count(Notification.RPC_EVENT) == 0

    async def test_close_before_registration_resolves(
        self, store, gated_bus, bus, rpc_event
    ):
        """Test that an unmount before subscribe completes leaves no listener."""
        r = LiveStreamReconciler(store, gated_bus)
        await r.start()
        await asyncio.sleep(0)
        await r.close()

        gated_bus.gate.set()
        await r.subscriptions.wait_registered()

        assert bus.listener_count(Notification.RPC_EVENT) == 0
        await bus.emit(Notification.RPC_EVENT, rpc_event("new", 9000))
        assert r.items == []
