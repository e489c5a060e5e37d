"""Column mutations for a board."""

from __future__ import annotations

from optikan import positions
from optikan.cache.keys import boards_key, columns_key
from optikan.ids import new_id
from optikan.models import Column, now_iso
from optikan.ops._common import patch_item
from optikan.patch import ColumnPatch
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_index, optional_text, require_id, require_index, require_title


async def create_column(
    session: Session,
    board_id: str,
    title: str,
    position: int | None = None,
    *,
    color: str | None = None,
    icon: str | None = None,
    wip_limit: int | None = None,
    is_enabled: bool | None = None,
    column_id: str | None = None,
) -> Outcome:
    """Create a column at position (default: after the last column).

    On success the outcome's value is the speculative Column.
    """
    board_id = require_id(board_id, "board_id")
    title = require_title(title, "Column name")
    wip_limit = optional_index(wip_limit, "wip_limit")
    key = columns_key(board_id)
    cached = session.read(key)
    position = require_index(len(cached or ()) if position is None else position)
    if cached is not None:
        position = positions.clamp_index(position, len(cached))
    column_id = require_id(column_id) if column_id is not None else new_id()

    stamp = now_iso()
    column = Column(
        id=column_id,
        board_id=board_id,
        title=title,
        position=position,
        color=optional_text(color, "color") or None,
        icon=optional_text(icon, "icon") or None,
        is_enabled=True if is_enabled is None else bool(is_enabled),
        wip_limit=wip_limit,
        created_at=stamp,
        updated_at=stamp,
    )

    async def dispatch():
        await session.remote.create_column(
            board_id,
            column_id,
            title,
            position,
            color=color,
            icon=icon,
            wip_limit=wip_limit,
            is_enabled=is_enabled,
        )
        return column

    return await session.run(
        Transaction(
            name="create_column",
            dispatch=dispatch,
            speculate={
                key: lambda columns: positions.insert(
                    positions.ordered(columns), column, position, positions.COLUMN_BASE
                )
            },
            settle_keys=(boards_key(),),
        )
    )


async def move_column(session: Session, board_id: str, column_id: str, target_index: int) -> Outcome:
    """Reorder a column within its board."""
    board_id = require_id(board_id, "board_id")
    column_id = require_id(column_id, "column_id")
    target_index = require_index(target_index, "target_index")

    return await session.run(
        Transaction(
            name="move_column",
            dispatch=lambda: session.remote.move_column(board_id, column_id, target_index),
            speculate={
                columns_key(board_id): lambda columns: positions.reorder(
                    positions.ordered(columns), column_id, target_index, positions.COLUMN_BASE
                )
            },
            settle_keys=(boards_key(),),
        )
    )


async def update_column(session: Session, board_id: str, column_id: str, patch: ColumnPatch) -> Outcome:
    """Patch title, color, icon or enabled flag of a column."""
    board_id = require_id(board_id, "board_id")
    column_id = require_id(column_id, "column_id")
    patch = check_patch(patch, titles=("title",))
    stamp = now_iso()

    return await session.run(
        Transaction(
            name="update_column",
            dispatch=lambda: session.remote.update_column(column_id, board_id, patch.present()),
            speculate={
                columns_key(board_id): lambda columns: patch_item(
                    columns, column_id, lambda c: patch.apply(c, stamp)
                )
            },
            settle_keys=(boards_key(),),
        )
    )


async def rename_column(session: Session, board_id: str, column_id: str, title: str) -> Outcome:
    return await update_column(session, board_id, column_id, ColumnPatch(title=title))


async def delete_column(session: Session, board_id: str, column_id: str) -> Outcome:
    """Remove a column. The service refuses while it still holds cards."""
    board_id = require_id(board_id, "board_id")
    column_id = require_id(column_id, "column_id")

    return await session.run(
        Transaction(
            name="delete_column",
            dispatch=lambda: session.remote.delete_column(column_id, board_id),
            speculate={
                columns_key(board_id): lambda columns: positions.remove(
                    positions.ordered(columns), column_id, positions.COLUMN_BASE
                )
            },
            settle_keys=(boards_key(),),
        )
    )

