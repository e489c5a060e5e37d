"""Subtask mutations. Subtasks are cached inside their card."""

from __future__ import annotations

from dataclasses import replace

from optikan import positions
from optikan.cache.keys import cards_key
from optikan.ids import new_id
from optikan.models import Card, Subtask, now_iso
from optikan.ops._common import merge_confirmed, patch_item
from optikan.patch import SubtaskPatch
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_index, require_id, require_title


def _with_subtasks(card: Card, subtasks) -> Card:
    return replace(card, subtasks=tuple(subtasks))


def _confirm(card_id: str):
    """Reconcile the cards snapshot with a server-confirmed subtask."""

    def merge(cards, confirmed: Subtask):
        return patch_item(
            cards,
            card_id,
            lambda c: _with_subtasks(
                c, merge_confirmed(positions.ordered(c.subtasks), confirmed, positions.SUBTASK_BASE)
            ),
        )

    return merge


async def create_subtask(
    session: Session,
    board_id: str,
    card_id: str,
    title: str,
    position: int | None = None,
    *,
    subtask_id: str | None = None,
) -> Outcome:
    """Add a subtask at index position (default: last).

    The outcome's value is the service's Subtask.
    """
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    title = require_title(title, "Subtask title")
    position = optional_index(position)
    subtask_id = require_id(subtask_id) if subtask_id is not None else new_id()
    key = cards_key(board_id)

    stamp = now_iso()
    subtask = Subtask(
        id=subtask_id,
        board_id=board_id,
        card_id=card_id,
        title=title,
        position=positions.SUBTASK_BASE,
        created_at=stamp,
        updated_at=stamp,
    )

    def speculate(cards):
        return patch_item(
            cards,
            card_id,
            lambda c: _with_subtasks(
                c, positions.insert(positions.ordered(c.subtasks), subtask, position, positions.SUBTASK_BASE)
            ),
        )

    return await session.run(
        Transaction(
            name="create_subtask",
            dispatch=lambda: session.remote.create_subtask(board_id, card_id, subtask_id, title, position),
            speculate={key: speculate},
            reconcile={key: _confirm(card_id)},
        )
    )


async def update_subtask(
    session: Session,
    board_id: str,
    card_id: str,
    subtask_id: str,
    patch: SubtaskPatch,
) -> Outcome:
    """Rename, toggle completion, or reorder (target_position) a subtask."""
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    subtask_id = require_id(subtask_id, "subtask_id")
    patch = check_patch(patch, titles=("title",))
    key = cards_key(board_id)
    stamp = now_iso()
    target = patch.present().get("target_position")

    def change(card: Card) -> Card:
        subtasks = patch_item(positions.ordered(card.subtasks), subtask_id, lambda s: patch.apply(s, stamp))
        if target is not None:
            subtasks = positions.reorder(subtasks, subtask_id, target, positions.SUBTASK_BASE)
        return _with_subtasks(card, subtasks)

    return await session.run(
        Transaction(
            name="update_subtask",
            dispatch=lambda: session.remote.update_subtask(subtask_id, board_id, card_id, patch.present()),
            speculate={key: lambda cards: patch_item(cards, card_id, change)},
            reconcile={key: _confirm(card_id)},
        )
    )


async def toggle_subtask(session: Session, board_id: str, card_id: str, subtask_id: str, done: bool) -> Outcome:
    return await update_subtask(session, board_id, card_id, subtask_id, SubtaskPatch(is_completed=done))


async def delete_subtask(session: Session, board_id: str, card_id: str, subtask_id: str) -> Outcome:
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    subtask_id = require_id(subtask_id, "subtask_id")

    def speculate(cards):
        return patch_item(
            cards,
            card_id,
            lambda c: _with_subtasks(
                c, positions.remove(positions.ordered(c.subtasks), subtask_id, positions.SUBTASK_BASE)
            ),
        )

    return await session.run(
        Transaction(
            name="delete_subtask",
            dispatch=lambda: session.remote.delete_subtask(subtask_id, board_id, card_id),
            speculate={cards_key(board_id): speculate},
        )
    )
