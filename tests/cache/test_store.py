"""Tests for the snapshot cache store."""

import asyncio

import pytest

from optikan.cache import CacheKey, CacheStore, boards_key, cards_key, columns_key
from optikan.cache.keys import board_keys

from ..conftest import _make_column


class FakeLoader:
    """Loader returning canned snapshots; can be held open per key."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.calls = []
        self.gates = {}

    async def __call__(self, key):
        self.calls.append(key)
        gate = self.gates.pop(key, None)
        value = self.data[key]
        if gate is not None:
            await gate.wait()
        if isinstance(value, Exception):
            raise value
        return value


KEY = columns_key("b1")
BACKLOG = _make_column("c1", "Backlog", 0)
TODO = _make_column("c2", "Todo", 1)


# --- keys ---


def test_key_str_and_parse():
    assert str(cards_key("b1")) == "cards:b1"
    assert str(boards_key()) == "boards"
    assert CacheKey.parse("cards:b1") == cards_key("b1")
    assert CacheKey.parse("boards") == boards_key()


def test_board_keys():
    assert [str(k) for k in board_keys("b1")] == ["columns:b1", "cards:b1", "tags:b1", "notes:b1"]


# --- reads and writes ---


def test_read_unknown_key_is_none():
    store = CacheStore()
    assert store.read(KEY) is None
    assert KEY not in store


def test_replace_stores_tuple():
    store = CacheStore()
    store.replace(KEY, [BACKLOG])
    assert store.read(KEY) == (BACKLOG,)
    assert store.keys() == [KEY]


def test_watch_fires_on_change_only():
    store = CacheStore()
    seen = []
    store.watch(KEY, lambda key, old, new: seen.append((key, old, new)))

    store.replace(KEY, [BACKLOG])
    store.replace(KEY, [BACKLOG])
    store.replace(KEY, [BACKLOG, TODO])

    assert seen == [(KEY, None, (BACKLOG,)), (KEY, (BACKLOG,), (BACKLOG, TODO))]


def test_unwatch():
    store = CacheStore()
    seen = []
    unwatch = store.watch(KEY, lambda *a: seen.append(a))
    unwatch()
    store.replace(KEY, [BACKLOG])
    assert seen == []


def test_watch_all_fires_after_key_watchers():
    store = CacheStore()
    order = []
    store.watch_all(lambda key, old, new: order.append(("all", key)))
    store.watch(KEY, lambda key, old, new: order.append(("key", key)))
    store.replace(KEY, [BACKLOG])
    assert order == [("key", KEY), ("all", KEY)]


def test_remove_and_remove_scope():
    store = CacheStore()
    for key in board_keys("b1") + board_keys("b2"):
        store.replace(key, [])
    store.remove(KEY)
    assert KEY not in store
    store.remove_scope("b1")
    assert {k.scope for k in store.keys()} == {"b2"}


def test_cancel_in_flight_bumps_generation():
    store = CacheStore()
    store.cancel_in_flight(KEY)
    store.cancel_in_flight(KEY)
    assert store.generation(KEY) == 2


def test_invalidate_without_loop_marks_stale():
    store = CacheStore(FakeLoader({KEY: ()}))
    store.replace(KEY, [BACKLOG])
    store.invalidate(KEY)
    assert store.is_stale(KEY)
    assert store.read(KEY) == (BACKLOG,)


# --- refresh protocol ---


@pytest.mark.asyncio
async def test_ensure_loads_once():
    loader = FakeLoader({KEY: (BACKLOG,)})
    store = CacheStore(loader)
    assert await store.ensure(KEY) == (BACKLOG,)
    assert await store.ensure(KEY) == (BACKLOG,)
    assert loader.calls == [KEY]


@pytest.mark.asyncio
async def test_invalidate_refreshes_in_background():
    loader = FakeLoader({KEY: (BACKLOG, TODO)})
    store = CacheStore(loader)
    store.replace(KEY, [BACKLOG])

    store.invalidate(KEY)
    assert store.read(KEY) == (BACKLOG,)
    assert store.is_stale(KEY)

    await store.wait_idle()
    assert store.read(KEY) == (BACKLOG, TODO)
    assert not store.is_stale(KEY)


@pytest.mark.asyncio
async def test_superseded_refresh_is_discarded():
    loader = FakeLoader({KEY: (TODO,)})
    gate = loader.gates[KEY] = asyncio.Event()
    store = CacheStore(loader)
    store.replace(KEY, [BACKLOG])

    store.invalidate(KEY)
    await asyncio.sleep(0)
    store.cancel_in_flight(KEY)
    store.replace(KEY, [BACKLOG, TODO])
    gate.set()
    await store.wait_idle()

    assert store.read(KEY) == (BACKLOG, TODO)


@pytest.mark.asyncio
async def test_newer_invalidation_wins():
    loader = FakeLoader({KEY: (TODO,)})
    store = CacheStore(loader)
    store.invalidate(KEY)
    store.invalidate(KEY)
    await store.wait_idle()
    assert store.read(KEY) == (TODO,)
    assert len(loader.calls) == 2


@pytest.mark.asyncio
async def test_failed_background_refresh_keeps_stale_snapshot(caplog):
    loader = FakeLoader({KEY: RuntimeError("offline")})
    store = CacheStore(loader)
    store.replace(KEY, [BACKLOG])

    store.invalidate(KEY)
    await store.wait_idle()

    assert store.read(KEY) == (BACKLOG,)
    assert store.is_stale(KEY)
    assert "refresh of columns:b1 failed: offline" in caplog.text


@pytest.mark.asyncio
async def test_refresh_propagates_loader_errors():
    store = CacheStore(FakeLoader({KEY: RuntimeError("offline")}))
    with pytest.raises(RuntimeError, match="offline"):
        await store.refresh(KEY)


@pytest.mark.asyncio
async def test_close_cancels_pending_refreshes():
    loader = FakeLoader({KEY: (TODO,)})
    loader.gates[KEY] = asyncio.Event()
    async with CacheStore(loader) as store:
        store.invalidate(KEY)
        await asyncio.sleep(0)
    assert store.closed
    assert store.read(KEY) is None
    store.invalidate(KEY)
    assert loader.calls == [KEY]
