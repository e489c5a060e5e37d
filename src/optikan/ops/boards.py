"""Board mutations.

Deleting a board drops every board-scoped key from the cache once the
service confirmed the delete.
"""

from __future__ import annotations

from optikan.cache.keys import board_keys, boards_key
from optikan.ids import new_id
from optikan.models import DEFAULT_BOARD_ICON, Board, now_iso
from optikan.ops._common import patch_item, without
from optikan.patch import UNSET, BoardPatch, Maybe
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_text, require_id, require_title


async def create_board(
    session: Session,
    title: str,
    *,
    workspace_id: str | None = None,
    description: str | None = None,
    icon: str | None = None,
    board_id: str | None = None,
) -> Outcome:
    """Create a board; the outcome's value is the speculative Board."""
    title = require_title(title, "Board title")
    workspace_id = require_id(workspace_id, "workspace_id") if workspace_id is not None else None
    description = optional_text(description, "description") or None
    icon = optional_text(icon, "icon") or DEFAULT_BOARD_ICON
    board_id = require_id(board_id) if board_id is not None else new_id()
    stamp = now_iso()
    board = Board(
        id=board_id,
        title=title,
        workspace_id=workspace_id,
        description=description,
        icon=icon,
        created_at=stamp,
        updated_at=stamp,
    )

    async def dispatch():
        await session.remote.create_board(board_id, title, workspace_id, description, icon)
        return board

    return await session.run(
        Transaction(
            name="create_board",
            dispatch=dispatch,
            speculate={boards_key(): lambda boards: [*boards, board]},
        )
    )


async def update_board(session: Session, board_id: str, patch: BoardPatch, name: str = "update_board") -> Outcome:
    board_id = require_id(board_id, "board_id")
    patch = check_patch(patch, titles=("title", "icon"))
    stamp = now_iso()

    return await session.run(
        Transaction(
            name=name,
            dispatch=lambda: session.remote.update_board(board_id, patch.present()),
            speculate={boards_key(): lambda boards: patch_item(boards, board_id, lambda b: patch.apply(b, stamp))},
        )
    )


async def rename_board(
    session: Session, board_id: str, title: str, description: Maybe[str | None] = UNSET
) -> Outcome:
    """Change the title and, if given, the description (None clears it)."""
    return await update_board(session, board_id, BoardPatch(title=title, description=description), "rename_board")


async def update_board_icon(session: Session, board_id: str, icon: str) -> Outcome:
    return await update_board(session, board_id, BoardPatch(icon=icon), "update_board_icon")


async def archive_board(session: Session, board_id: str) -> Outcome:
    """Hide a board from the board list. Its data stays on the service."""
    board_id = require_id(board_id, "board_id")

    return await session.run(
        Transaction(
            name="archive_board",
            dispatch=lambda: session.remote.archive_board(board_id),
            speculate={boards_key(): lambda boards: without(boards, board_id)},
        )
    )


async def delete_board(session: Session, board_id: str) -> Outcome:
    """Delete a board with its columns, cards, tags and notes."""
    board_id = require_id(board_id, "board_id")

    return await session.run(
        Transaction(
            name="delete_board",
            dispatch=lambda: session.remote.delete_board(board_id),
            speculate={boards_key(): lambda boards: without(boards, board_id)},
            drop_keys=board_keys(board_id),
        )
    )
