"""A session ties one remote service to one cache store and runner.

Create it at application start, close it at shutdown. Tests build a
fresh session per case.
"""

from __future__ import annotations

import logging

from optikan.cache.keys import CacheKey, cards_key, columns_key, tags_key
from optikan.cache.store import CacheStore
from optikan.remote.base import RemoteService, make_loader
from optikan.transaction import Notifier, Outcome, Transaction, TransactionRunner

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        remote: RemoteService,
        on_failure: Notifier | None = None,
        dispatch_timeout: float | None = None,
    ) -> None:
        self.remote = remote
        self.store = CacheStore(make_loader(remote))
        self.runner = TransactionRunner(self.store, on_failure=on_failure, dispatch_timeout=dispatch_timeout)

    @classmethod
    def from_config(cls, config, on_failure: Notifier | None = None) -> Session:
        """Session over a YAML-backed memory service described by config."""
        from optikan.remote.memory import MemoryRemote

        remote = MemoryRemote.load(config.data_path, latency=config.latency, autosave=config.data_path)
        return cls(remote, on_failure=on_failure, dispatch_timeout=config.dispatch_timeout)

    def read(self, key: CacheKey) -> tuple | None:
        return self.store.read(key)

    async def ensure(self, key: CacheKey) -> tuple | None:
        return await self.store.ensure(key)

    async def open_board(self, board_id: str) -> None:
        """Load the columns, cards and tags of a board into the cache."""
        for key in (columns_key(board_id), cards_key(board_id), tags_key(board_id)):
            await self.store.ensure(key)

    async def run(self, tx: Transaction) -> Outcome:
        return await self.runner.run(tx)

    async def settle(self) -> None:
        """Wait for every background refresh to land."""
        await self.store.wait_idle()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
