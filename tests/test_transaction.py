"""Tests for the optimistic transaction lifecycle."""

import asyncio
import logging

import pytest

from optikan.cache import CacheStore, boards_key, cards_key, columns_key
from optikan.errors import ConflictError, DispatchTimeout
from optikan.ops.cards import move_card
from optikan.ops.columns import move_column
from optikan.session import Session
from optikan.transaction import Failure, Success, Transaction, TransactionRunner

from .conftest import _column_cards, _ids, _make_column

COLUMNS = columns_key("b1")
CARDS = cards_key("b1")


async def _open(session):
    await session.open_board("b1")
    return session


def _runner(store=None, **kwargs):
    return TransactionRunner(store or CacheStore(), **kwargs)


# --- speculative apply ---


@pytest.mark.asyncio
async def test_speculative_state_visible_while_dispatch_pending(session, remote):
    await _open(session)
    gate = remote.hold("move_column")

    task = asyncio.create_task(move_column(session, "b1", "done", 0))
    await asyncio.sleep(0)

    assert _ids(session.read(COLUMNS)) == ["done", "todo"]
    assert remote.columns["done"].position == 1

    gate.set()
    outcome = await task
    assert outcome.ok
    await session.settle()
    assert _ids(session.read(COLUMNS)) == ["done", "todo"]


@pytest.mark.asyncio
async def test_refresh_scheduled_before_begin_is_discarded(session, remote):
    """A load that was already in flight must not clobber the speculative order."""
    await _open(session)
    load_gate = remote.hold("load_columns")
    session.store.invalidate(COLUMNS)
    await asyncio.sleep(0)

    dispatch_gate = remote.hold("move_column")
    task = asyncio.create_task(move_column(session, "b1", "done", 0))
    await asyncio.sleep(0)
    assert _ids(session.read(COLUMNS)) == ["done", "todo"]

    load_gate.set()
    await session.settle()
    assert _ids(session.read(COLUMNS)) == ["done", "todo"]

    dispatch_gate.set()
    assert (await task).ok
    await session.settle()
    assert _ids(session.read(COLUMNS)) == ["done", "todo"]


@pytest.mark.asyncio
async def test_unknown_keys_pass_through():
    store = CacheStore()
    tx = Transaction(
        name="noop",
        dispatch=_returning(None),
        speculate={COLUMNS: lambda columns: [*columns, _make_column("x")]},
    )
    outcome = await _runner(store).run(tx)
    assert outcome == Success(None)
    assert store.read(COLUMNS) is None


@pytest.mark.asyncio
async def test_reconcile_runs_with_result():
    store = CacheStore()
    store.replace(COLUMNS, [_make_column("a", "A", 0)])
    tx = Transaction(
        name="rename",
        dispatch=_returning("Confirmed"),
        speculate={COLUMNS: lambda columns: columns},
        reconcile={COLUMNS: lambda columns, title: [_make_column("a", title, 0)]},
    )
    outcome = await _runner(store).run(tx)
    assert outcome.value == "Confirmed"
    assert store.read(COLUMNS)[0].title == "Confirmed"


@pytest.mark.asyncio
async def test_no_payload_keeps_speculative_state():
    store = CacheStore()
    store.replace(COLUMNS, [_make_column("a", "A", 0)])
    tx = Transaction(
        name="rename",
        dispatch=_returning(None),
        speculate={COLUMNS: lambda columns: [_make_column("a", "Speculative", 0)]},
        reconcile={COLUMNS: lambda columns, value: pytest.fail("reconcile without payload")},
    )
    await _runner(store).run(tx)
    assert store.read(COLUMNS)[0].title == "Speculative"


# --- rollback ---


@pytest.mark.asyncio
async def test_failed_move_rolls_back_exactly(session, remote, failures):
    await _open(session)
    before = {key: session.read(key) for key in (COLUMNS, CARDS)}
    remote.fail_next("move_card", ConflictError("Column 'Done' is at its WIP limit (1).", operation="move_card"))

    outcome = await move_card(session, "b1", "B", "todo", "done", 0)

    assert isinstance(outcome, Failure)
    assert outcome.message == "Column 'Done' is at its WIP limit (1)."
    assert outcome.operation == "move_card"
    assert {key: session.read(key) for key in (COLUMNS, CARDS)} == before
    assert failures == [outcome]


@pytest.mark.asyncio
async def test_rollback_logs_warning(session, remote, caplog):
    await _open(session)
    remote.fail_next("move_column", "Server said no.")
    with caplog.at_level(logging.WARNING, logger="optikan.transaction"):
        await move_column(session, "b1", "done", 0)
    assert "move_column failed, rolled back: Server said no." in caplog.text


@pytest.mark.asyncio
async def test_any_dispatch_exception_becomes_failure():
    store = CacheStore()
    store.replace(COLUMNS, [_make_column("a", "A", 0)])
    notified = []

    async def explode():
        raise ValueError("bad payload")

    tx = Transaction(
        name="explode",
        dispatch=explode,
        speculate={COLUMNS: lambda columns: []},
    )
    outcome = await _runner(store, on_failure=notified.append).run(tx)
    assert not outcome.ok
    assert outcome.message == "bad payload"
    assert outcome.operation is None
    assert store.read(COLUMNS) == (_make_column("a", "A", 0),)
    assert notified == [outcome]


@pytest.mark.asyncio
async def test_timeout_rolls_back(remote):
    session = Session(remote, dispatch_timeout=0.01)
    await _open(session)
    before = session.read(COLUMNS)
    remote.hold("move_column")

    outcome = await move_column(session, "b1", "done", 0)

    assert isinstance(outcome.error, DispatchTimeout)
    assert "did not complete within" in outcome.message
    assert session.read(COLUMNS) == before
    await session.close()


@pytest.mark.asyncio
async def test_cancellation_rolls_back_and_propagates(session, remote):
    await _open(session)
    before = session.read(CARDS)
    remote.hold("move_card")

    task = asyncio.create_task(move_card(session, "b1", "A", "todo", "done", 0))
    await asyncio.sleep(0)
    assert _ids(_column_cards(session.read(CARDS), "done")) == ["A", "D"]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert session.read(CARDS) == before
    await session.close()


# --- settle ---


@pytest.mark.asyncio
async def test_settle_invalidates_affected_and_settle_keys(session):
    await _open(session)
    await session.ensure(boards_key())
    await move_column(session, "b1", "done", 0)
    assert session.store.is_stale(COLUMNS)
    assert session.store.is_stale(boards_key())
    await session.settle()
    assert not session.store.is_stale(COLUMNS)


@pytest.mark.asyncio
async def test_settle_twice_matches_once(session, remote):
    await _open(session)
    await move_card(session, "b1", "B", "todo", "done", 0)
    await session.settle()
    once = session.read(CARDS)

    session.store.invalidate(CARDS)
    session.store.invalidate(CARDS)
    await session.settle()
    assert session.read(CARDS) == once


@pytest.mark.asyncio
async def test_drop_keys_only_on_success():
    store = CacheStore()
    store.replace(CARDS, [])

    async def reject():
        raise ConflictError("no")

    await _runner(store).run(Transaction(name="drop", dispatch=reject, drop_keys=(CARDS,)))
    assert CARDS in store

    await _runner(store).run(Transaction(name="drop", dispatch=_returning(None), drop_keys=(CARDS,)))
    assert CARDS not in store


def test_transaction_keys_first_mention_order():
    tx = Transaction(
        name="t",
        dispatch=_returning(None),
        speculate={CARDS: None, COLUMNS: None},
        reconcile={COLUMNS: None, boards_key(): None},
    )
    assert tx.keys == (CARDS, COLUMNS, boards_key())


def _returning(value):
    async def dispatch():
        return value

    return dispatch
