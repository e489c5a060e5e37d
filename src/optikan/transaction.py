"""Optimistic transaction lifecycle.

Every mutation runs through ``TransactionRunner.run``:

begin -> snapshot -> speculative apply -> dispatch -> reconcile | rollback
-> settle

Only the dispatch step suspends. Remote failures are rolled back and
returned as ``Failure``; they never propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar, Union

from optikan.cache.keys import CacheKey
from optikan.cache.store import CacheStore
from optikan.errors import DispatchTimeout, RemoteError

logger = logging.getLogger(__name__)

R = TypeVar("R")

Transform = Callable[[tuple], Any]
Merge = Callable[[tuple, Any], Any]


@dataclass
class Transaction(Generic[R]):
    """One optimistic mutation.

    speculate maps each affected key to a pure transform of its snapshot.
    reconcile maps keys to a merge of (current snapshot, remote result),
    run on success only. settle_keys are invalidated in addition to the
    affected keys; drop_keys are removed from the cache once the remote
    call succeeded.
    """

    name: str
    dispatch: Callable[[], Awaitable[R]]
    speculate: Mapping[CacheKey, Transform] = field(default_factory=dict)
    reconcile: Mapping[CacheKey, Merge] = field(default_factory=dict)
    settle_keys: tuple[CacheKey, ...] = ()
    drop_keys: tuple[CacheKey, ...] = ()

    @property
    def keys(self) -> tuple[CacheKey, ...]:
        """Affected keys, in first-mention order."""
        seen: dict[CacheKey, None] = {}
        for key in list(self.speculate) + list(self.reconcile):
            seen.setdefault(key, None)
        return tuple(seen)


@dataclass(frozen=True)
class Success(Generic[R]):
    value: R = None
    ok: bool = True


@dataclass(frozen=True)
class Failure:
    transaction: str
    error: BaseException
    ok: bool = False

    @property
    def message(self) -> str:
        """User-facing description of the failure."""
        return str(self.error) or type(self.error).__name__

    @property
    def operation(self) -> str | None:
        if isinstance(self.error, RemoteError):
            return self.error.operation
        return None


Outcome = Union[Success, Failure]

Notifier = Callable[[Failure], None]


class TransactionRunner:
    """Runs transactions against one cache store."""

    def __init__(
        self,
        store: CacheStore,
        on_failure: Notifier | None = None,
        dispatch_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.on_failure = on_failure
        self.dispatch_timeout = dispatch_timeout

    async def run(self, tx: Transaction[R]) -> Outcome:
        store = self.store
        keys = tx.keys

        for key in keys:
            store.cancel_in_flight(key)

        snapshots = {key: store.read(key) for key in keys}
        written: list[CacheKey] = []

        try:
            for key, transform in tx.speculate.items():
                current = snapshots[key]
                if current is None:
                    logger.debug("%s: %s unknown, passing through", tx.name, key)
                    continue
                store.replace(key, transform(current))
                written.append(key)
                logger.debug("%s: speculative write to %s", tx.name, key)

            value = await self._dispatch(tx)
        except asyncio.CancelledError:
            self._rollback(snapshots, written)
            self._settle(tx)
            raise
        except Exception as exc:
            self._rollback(snapshots, written)
            self._settle(tx)
            logger.warning("%s failed, rolled back: %s", tx.name, exc)
            failure = Failure(transaction=tx.name, error=exc)
            if self.on_failure is not None:
                self.on_failure(failure)
            return failure

        if value is not None:
            for key, merge in tx.reconcile.items():
                current = store.read(key)
                if current is None:
                    continue
                store.replace(key, merge(current, value))
        for key in tx.drop_keys:
            store.remove(key)
        self._settle(tx)
        return Success(value)

    async def _dispatch(self, tx: Transaction[R]) -> R:
        if self.dispatch_timeout is None:
            return await tx.dispatch()
        try:
            return await asyncio.wait_for(tx.dispatch(), self.dispatch_timeout)
        except asyncio.TimeoutError:
            raise DispatchTimeout(
                f"{tx.name} did not complete within {self.dispatch_timeout}s", operation=tx.name
            ) from None

    def _rollback(self, snapshots: dict[CacheKey, tuple | None], written: list[CacheKey]) -> None:
        for key in written:
            self.store.replace(key, snapshots[key])

    def _settle(self, tx: Transaction) -> None:
        for key in dict.fromkeys(tx.keys + tx.settle_keys):
            self.store.invalidate(key)
