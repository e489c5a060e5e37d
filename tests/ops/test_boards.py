"""Tests for board and workspace mutations."""

import pytest

from optikan.cache import board_keys, boards_key, workspaces_key
from optikan.errors import ValidationError
from optikan.models import Board, Workspace, find
from optikan.ops.boards import archive_board, create_board, delete_board, rename_board, update_board_icon
from optikan.ops.workspaces import create_workspace, delete_workspace, update_workspace
from optikan.patch import WorkspacePatch

from ..conftest import _ids

BOARDS = boards_key()


@pytest.mark.asyncio
async def test_create_board(session, remote):
    await session.ensure(BOARDS)
    outcome = await create_board(session, "Roadmap", description="Q3", board_id="b2")

    assert outcome.value.icon == "Folder"
    assert _ids(session.read(BOARDS)) == ["b1", "b2"]
    assert remote.boards["b2"].description == "Q3"


@pytest.mark.asyncio
async def test_create_board_in_missing_workspace_rolls_back(session):
    await session.ensure(BOARDS)
    outcome = await create_board(session, "Roadmap", workspace_id="w9")
    assert outcome.message == "Workspace not found."
    assert _ids(session.read(BOARDS)) == ["b1"]


@pytest.mark.asyncio
async def test_rename_board(session, remote):
    await session.ensure(BOARDS)
    await rename_board(session, "b1", "Sprint 12", description="Two weeks")
    board = find(session.read(BOARDS), "b1")
    assert (board.title, board.description) == ("Sprint 12", "Two weeks")
    assert remote.boards["b1"].title == "Sprint 12"


@pytest.mark.asyncio
async def test_rename_board_keeps_description_unless_given(session, remote):
    remote.put(Board(id="b1", title="Sprint", description="Keep me"))
    await session.ensure(BOARDS)
    await rename_board(session, "b1", "Sprint 13")
    assert remote.boards["b1"].description == "Keep me"
    await rename_board(session, "b1", "Sprint 13", description=None)
    assert remote.boards["b1"].description is None


@pytest.mark.asyncio
async def test_update_board_icon(session, remote):
    await session.ensure(BOARDS)
    outcome = await update_board_icon(session, "b1", "Rocket")
    assert outcome.ok
    assert find(session.read(BOARDS), "b1").icon == "Rocket"
    with pytest.raises(ValidationError):
        await update_board_icon(session, "b1", "  ")


@pytest.mark.asyncio
async def test_archive_board_hides_it(session, remote):
    await session.ensure(BOARDS)
    await archive_board(session, "b1")
    assert session.read(BOARDS) == ()
    await session.settle()
    assert session.read(BOARDS) == ()
    assert remote.boards["b1"].archived_at is not None


@pytest.mark.asyncio
async def test_delete_board_drops_scoped_keys(session, remote):
    await session.ensure(BOARDS)
    await session.open_board("b1")

    outcome = await delete_board(session, "b1")

    assert outcome.ok
    assert session.read(BOARDS) == ()
    for key in board_keys("b1"):
        assert key not in session.store
    assert not remote.cards
    assert not remote.columns
    assert not remote.tags


@pytest.mark.asyncio
async def test_failed_delete_board_keeps_everything(session, remote):
    await session.ensure(BOARDS)
    await session.open_board("b1")
    before = {key: session.read(key) for key in (BOARDS,) + board_keys("b1")}
    remote.fail_next("delete_board")

    outcome = await delete_board(session, "b1")

    assert not outcome.ok
    assert {key: session.read(key) for key in (BOARDS,) + board_keys("b1")} == before


# --- workspaces ---


@pytest.mark.asyncio
async def test_workspace_lifecycle(session, remote):
    await session.ensure(workspaces_key())

    created = await create_workspace(session, "Team", "#6366F1", workspace_id="w1")
    assert isinstance(created.value, Workspace)
    assert _ids(session.read(workspaces_key())) == ["w1"]

    updated = await update_workspace(session, "w1", WorkspacePatch(name="Platform", color=None))
    assert updated.value.name == "Platform"
    assert session.read(workspaces_key())[0].color is None

    await delete_workspace(session, "w1")
    assert session.read(workspaces_key()) == ()
    assert "w1" not in remote.workspaces


@pytest.mark.asyncio
async def test_delete_workspace_with_boards_rolls_back(session, remote):
    remote.put(Workspace(id="w1", name="Team"))
    await session.ensure(workspaces_key())
    await create_board(session, "Roadmap", workspace_id="w1")

    outcome = await delete_workspace(session, "w1")

    assert "still has 1 board(s)" in outcome.message
    assert _ids(session.read(workspaces_key())) == ["w1"]
