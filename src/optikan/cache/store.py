"""In-memory cache of collection snapshots with change notification.

Snapshots are tuples, replaced wholesale. Watchers fire on every change
of a key, then watchers registered for all keys fire. Background
refreshes are tagged with the key's generation at scheduling time; a
refresh that lands after the generation moved on is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from optikan.cache.keys import CacheKey

logger = logging.getLogger(__name__)

Callback = Callable[[CacheKey, Any, Any], None]
Loader = Callable[[CacheKey], Awaitable[Iterable[Any]]]

ALL = "*"


class CacheStore:
    """Keyed store of the last known snapshot per collection.

    ``read`` returns None for a key that was never fetched. The store does
    no I/O itself: refreshes go through the loader it was built with.
    """

    def __init__(self, loader: Loader | None = None) -> None:
        self._loader = loader
        self._snapshots: dict[CacheKey, tuple] = {}
        self._stale: set[CacheKey] = set()
        self._generations: dict[CacheKey, int] = {}
        self._pending: set[asyncio.Task] = set()
        self._watchers: dict[CacheKey | str, list[Callback]] = {}
        self._closed = False

    # --- reads ---

    def read(self, key: CacheKey) -> tuple | None:
        """Current snapshot for key, or None if never fetched."""
        return self._snapshots.get(key)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._snapshots

    def keys(self) -> list[CacheKey]:
        return list(self._snapshots)

    def is_stale(self, key: CacheKey) -> bool:
        return key in self._stale

    def generation(self, key: CacheKey) -> int:
        return self._generations.get(key, 0)

    @property
    def closed(self) -> bool:
        return self._closed

    # --- writes ---

    def replace(self, key: CacheKey, snapshot: Iterable[Any]) -> None:
        """Overwrite the snapshot for key and notify watchers."""
        old = self._snapshots.get(key)
        new = tuple(snapshot)
        self._snapshots[key] = new
        if old != new:
            self._emit(key, old, new)

    def remove(self, key: CacheKey) -> None:
        """Forget key entirely. Pending refreshes for it are discarded."""
        self.cancel_in_flight(key)
        self._stale.discard(key)
        old = self._snapshots.pop(key, None)
        if old is not None:
            self._emit(key, old, None)

    def remove_scope(self, scope: str) -> None:
        """Forget every key with the given scope."""
        for key in [k for k in self._snapshots if k.scope == scope]:
            self.remove(key)

    # --- refresh protocol ---

    def cancel_in_flight(self, key: CacheKey) -> None:
        """Supersede any pending refresh of key.

        The load itself keeps running; only its result is dropped.
        """
        self._generations[key] = self._generations.get(key, 0) + 1

    def invalidate(self, key: CacheKey) -> None:
        """Mark key stale and schedule a background refresh.

        The stale snapshot stays readable until the refresh lands. Without
        a running event loop the key is only marked stale.
        """
        self._stale.add(key)
        self.cancel_in_flight(key)
        if self._loader is None or self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running loop, %s left stale", key)
            return
        task = loop.create_task(self._background_refresh(key, self._generations[key]))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def refresh(self, key: CacheKey) -> tuple | None:
        """Load key now and store the result. Loader errors propagate."""
        self.cancel_in_flight(key)
        return await self._load_into(key, self._generations[key])

    async def ensure(self, key: CacheKey) -> tuple | None:
        """Snapshot for key, loading it first if it was never fetched."""
        snapshot = self._snapshots.get(key)
        if snapshot is not None:
            return snapshot
        return await self.refresh(key)

    async def _load_into(self, key: CacheKey, generation: int) -> tuple | None:
        if self._loader is None:
            raise RuntimeError(f"no loader to refresh {key}")
        snapshot = tuple(await self._loader(key))
        if self._generations.get(key, 0) != generation:
            logger.debug("discarding superseded refresh of %s", key)
            return self._snapshots.get(key)
        self._stale.discard(key)
        self.replace(key, snapshot)
        return snapshot

    async def _background_refresh(self, key: CacheKey, generation: int) -> None:
        try:
            await self._load_into(key, generation)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("refresh of %s failed: %s", key, exc)

    async def wait_idle(self) -> None:
        """Wait until no background refresh is pending."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- subscriptions ---

    def watch(self, key: CacheKey, callback: Callback) -> Callable[[], None]:
        """Watch one key for changes. Returns an unwatch callable."""
        self._watchers.setdefault(key, []).append(callback)
        return lambda: self._unwatch(key, callback)

    def watch_all(self, callback: Callback) -> Callable[[], None]:
        """Watch every key. Returns an unwatch callable."""
        return self.watch(ALL, callback)

    def _unwatch(self, key: CacheKey | str, callback: Callback) -> None:
        callbacks = self._watchers.get(key, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def _emit(self, key: CacheKey, old: Any, new: Any) -> None:
        for cb in list(self._watchers.get(key, ())):
            cb(key, old, new)
        for cb in list(self._watchers.get(ALL, ())):
            cb(key, old, new)

    # --- lifecycle ---

    async def close(self) -> None:
        """Cancel pending refreshes and drop all watchers."""
        self._closed = True
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        self._watchers.clear()

    async def __aenter__(self) -> CacheStore:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        keys = ", ".join(str(k) for k in self._snapshots)
        return f"<CacheStore [{keys}]>"
