"""Shared test helpers: entity builders and a seeded memory service."""

import pytest

from optikan.models import Board, Card, Column, Subtask, Tag
from optikan.remote.memory import MemoryRemote
from optikan.session import Session

BOARD = "b1"


def _make_column(id, title=None, position=0, board_id=BOARD, **kwargs):
    """Helper to build a Column."""
    return Column(id=id, board_id=board_id, title=title or id, position=position, **kwargs)


def _make_card(id, column_id, position=0, title=None, board_id=BOARD, **kwargs):
    """Helper to build a Card."""
    return Card(id=id, board_id=board_id, column_id=column_id, title=title or id, position=position, **kwargs)


def _make_tag(id, label=None, board_id=BOARD, color=None):
    return Tag(id=id, board_id=board_id, label=label or id, color=color)


def _make_subtask(id, card_id, position=1, title=None, board_id=BOARD, **kwargs):
    return Subtask(id=id, board_id=board_id, card_id=card_id, title=title or id, position=position, **kwargs)


def _seed(remote):
    """Board b1: Todo [A, B, C], Done [D], tags bug and ui, C tagged bug."""
    bug = _make_tag("t1", "bug", color="#EF4444")
    ui = _make_tag("t2", "ui")
    remote.put(
        Board(id=BOARD, title="Sprint"),
        _make_column("todo", "Todo", 0),
        _make_column("done", "Done", 1),
        _make_card("A", "todo", 0),
        _make_card("B", "todo", 1),
        _make_card("C", "todo", 2, tags=(bug,)),
        _make_card("D", "done", 0),
        bug,
        ui,
    )
    return remote


def _ids(items):
    return [item.id for item in items]


def _positions(items):
    return [item.position for item in items]


def _column_cards(cards, column_id):
    """Cards of one column, ordered by position."""
    return sorted((c for c in cards if c.column_id == column_id), key=lambda c: c.position)


@pytest.fixture
def remote():
    """A memory service seeded with one board."""
    return _seed(MemoryRemote())


@pytest.fixture
def failures():
    return []


@pytest.fixture
def session(remote, failures):
    """A session over the seeded service, recording failure notifications."""
    return Session(remote, on_failure=failures.append)
