"""Card mutations for a board.

All cards of a board live in one ``cards:<board>`` snapshot, partitioned
by ``column_id``. Positions are dense per column.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from optikan import positions
from optikan.cache.keys import cards_key, columns_key, tags_key
from optikan.ids import new_id
from optikan.models import DEFAULT_PRIORITY, Card, find, now_iso
from optikan.ops._common import in_scope, patch_item
from optikan.patch import CardPatch
from optikan.resolver import resolve_tags
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import (
    check_patch,
    optional_text,
    require_id,
    require_ids,
    require_index,
    require_priority,
    require_title,
)

SCOPE = "column_id"


async def create_card(
    session: Session,
    board_id: str,
    column_id: str,
    title: str,
    position: int | None = None,
    *,
    priority: str = DEFAULT_PRIORITY,
    description: str | None = None,
    due_date: str | None = None,
    tag_ids: Iterable[str] = (),
    card_id: str | None = None,
) -> Outcome:
    """Create a card in column_id at position (default: bottom).

    Requested tags are resolved against the cached tag collection; unknown
    ids are left off the speculative card. The outcome's value is the
    speculative Card.
    """
    board_id = require_id(board_id, "board_id")
    column_id = require_id(column_id, "column_id")
    title = require_title(title, "Card title")
    priority = require_priority(priority)
    description = optional_text(description, "description")
    due_date = optional_text(due_date, "due_date")
    tag_ids = require_ids(tag_ids, "tag_id")
    key = cards_key(board_id)
    cached = session.read(key)
    siblings = positions.scope_of(cached or (), column_id, SCOPE)
    position = require_index(len(siblings) if position is None else position)
    if cached is not None:
        position = positions.clamp_index(position, len(siblings))
    card_id = require_id(card_id) if card_id is not None else new_id()

    stamp = now_iso()
    card = Card(
        id=card_id,
        board_id=board_id,
        column_id=column_id,
        title=title,
        position=position,
        priority=priority,
        description=description,
        due_date=due_date,
        created_at=stamp,
        updated_at=stamp,
    )

    def speculate(cards):
        tagged = replace(card, tags=resolve_tags(tag_ids, session.read(tags_key(board_id))))
        return in_scope(cards, column_id, lambda members: positions.insert(members, tagged, position, positions.CARD_BASE))

    async def dispatch():
        await session.remote.create_card(
            board_id,
            card_id,
            column_id,
            title,
            position,
            priority,
            description=description,
            due_date=due_date,
            tag_ids=tag_ids,
        )
        return card

    return await session.run(
        Transaction(
            name="create_card",
            dispatch=dispatch,
            speculate={key: speculate},
            settle_keys=(columns_key(board_id),),
        )
    )


async def move_card(
    session: Session,
    board_id: str,
    card_id: str,
    from_column_id: str,
    to_column_id: str,
    target_index: int,
) -> Outcome:
    """Move a card within its column or into another column."""
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    from_column_id = require_id(from_column_id, "from_column_id")
    to_column_id = require_id(to_column_id, "to_column_id")
    target_index = require_index(target_index, "target_index")

    def speculate(cards):
        return positions.move_between_scopes(
            cards, card_id, from_column_id, to_column_id, target_index, SCOPE, positions.CARD_BASE
        )

    return await session.run(
        Transaction(
            name="move_card",
            dispatch=lambda: session.remote.move_card(board_id, card_id, from_column_id, to_column_id, target_index),
            speculate={cards_key(board_id): speculate},
            settle_keys=(columns_key(board_id),),
        )
    )


async def update_card(session: Session, board_id: str, card_id: str, patch: CardPatch) -> Outcome:
    """Patch title, description, priority or due date.

    Fields left UNSET are untouched; None clears description or due date.
    """
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    patch = check_patch(patch, titles=("title",))
    stamp = now_iso()

    return await session.run(
        Transaction(
            name="update_card",
            dispatch=lambda: session.remote.update_card(card_id, board_id, patch.present()),
            speculate={cards_key(board_id): lambda cards: patch_item(cards, card_id, lambda c: patch.apply(c, stamp))},
        )
    )


async def delete_card(session: Session, board_id: str, card_id: str) -> Outcome:
    """Remove a card; the rest of its column closes the gap."""
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")

    def speculate(cards):
        card = find(cards, card_id)
        if card is None:
            return cards
        return in_scope(cards, card.column_id, lambda members: positions.remove(members, card_id, positions.CARD_BASE))

    return await session.run(
        Transaction(
            name="delete_card",
            dispatch=lambda: session.remote.delete_card(card_id, board_id),
            speculate={cards_key(board_id): speculate},
            settle_keys=(columns_key(board_id),),
        )
    )


async def set_card_tags(session: Session, board_id: str, card_id: str, tag_ids: Iterable[str]) -> Outcome:
    """Replace the tags on a card.

    The speculative card shows the requested tags that exist in the cached
    tag collection; on success the service's tag list replaces them.
    """
    board_id = require_id(board_id, "board_id")
    card_id = require_id(card_id, "card_id")
    tag_ids = require_ids(tag_ids, "tag_id")
    key = cards_key(board_id)

    def speculate(cards):
        resolved = resolve_tags(tag_ids, session.read(tags_key(board_id)))
        return patch_item(cards, card_id, lambda c: replace(c, tags=resolved))

    def reconcile(cards, tags):
        return patch_item(cards, card_id, lambda c: replace(c, tags=tuple(tags)))

    return await session.run(
        Transaction(
            name="set_card_tags",
            dispatch=lambda: session.remote.set_card_tags(card_id, board_id, tag_ids),
            speculate={key: speculate},
            reconcile={key: reconcile},
        )
    )
