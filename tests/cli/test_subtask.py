"""Tests for 'optikan subtask' commands."""

import json

import pytest

from optikan.cli.subtask import subtask_add, subtask_delete, subtask_done
from optikan.remote.memory import MemoryRemote

from ..conftest import _make_subtask
from .conftest import _args, _reload


@pytest.fixture
def with_subtasks(data_file):
    remote = MemoryRemote.load(data_file)
    remote.put(_make_subtask("s1", "A", 1, "Design"), _make_subtask("s2", "A", 2, "Build"))
    remote.save(data_file)
    return data_file


def _titles(data_file, card_id="A"):
    subtasks = [s for s in _reload(data_file).subtasks.values() if s.card_id == card_id]
    return [s.title for s in sorted(subtasks, key=lambda s: s.position)]


def test_subtask_add(with_subtasks, capsys):
    assert subtask_add(_args(with_subtasks, card="A", title="Ship", position=None)) == 0
    assert "Added subtask 3. Ship to card A" in capsys.readouterr().out
    assert _titles(with_subtasks) == ["Design", "Build", "Ship"]


def test_subtask_add_at_position(with_subtasks, capsys):
    assert subtask_add(_args(with_subtasks, card="A", title="Plan", position=1, json=True)) == 0
    assert json.loads(capsys.readouterr().out)["position"] == 1
    assert _titles(with_subtasks) == ["Plan", "Design", "Build"]


def test_subtask_done_by_number(with_subtasks, capsys):
    assert subtask_done(_args(with_subtasks, card="A", subtask="2", undo=False)) == 0
    assert "Subtask Build is done" in capsys.readouterr().out
    assert _reload(with_subtasks).subtasks["s2"].is_completed

    assert subtask_done(_args(with_subtasks, card="A", subtask="s2", undo=True)) == 0
    assert "is open" in capsys.readouterr().out
    assert not _reload(with_subtasks).subtasks["s2"].is_completed


def test_subtask_not_found(with_subtasks, capsys):
    with pytest.raises(SystemExit, match="1"):
        subtask_done(_args(with_subtasks, card="A", subtask="9", undo=False))
    assert "Subtask '9' not found on card A." in capsys.readouterr().err


def test_subtask_delete_renumbers(with_subtasks, capsys):
    assert subtask_delete(_args(with_subtasks, card="A", subtask="1")) == 0
    remote = _reload(with_subtasks)
    assert list(remote.subtasks) == ["s2"]
    assert remote.subtasks["s2"].position == 1
