"""Tag mutations.

Cards embed their tags, so renaming or deleting a tag also rewrites the
chips on every cached card of the board.
"""

from __future__ import annotations

from optikan.cache.keys import cards_key, tags_key
from optikan.ids import new_id
from optikan.models import Tag, now_iso
from optikan.ops._common import merge_confirmed, patch_item, without
from optikan.patch import TagPatch
from optikan.resolver import refresh_card_tags, strip_tag
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_text, require_id, require_title


async def create_tag(
    session: Session,
    board_id: str,
    label: str,
    color: str | None = None,
    *,
    tag_id: str | None = None,
) -> Outcome:
    """Add a tag to the board; the outcome's value is the service's Tag."""
    board_id = require_id(board_id, "board_id")
    label = require_title(label, "Tag label")
    color = optional_text(color, "color") or None
    tag_id = require_id(tag_id) if tag_id is not None else new_id()
    stamp = now_iso()
    tag = Tag(id=tag_id, board_id=board_id, label=label, color=color, created_at=stamp, updated_at=stamp)
    key = tags_key(board_id)

    return await session.run(
        Transaction(
            name="create_tag",
            dispatch=lambda: session.remote.create_tag(board_id, tag_id, label, color),
            speculate={key: lambda tags: [*tags, tag]},
            reconcile={key: merge_confirmed},
            settle_keys=(cards_key(board_id),),
        )
    )


async def update_tag(session: Session, board_id: str, tag_id: str, patch: TagPatch) -> Outcome:
    """Relabel or recolor a tag, including its chips on cached cards."""
    board_id = require_id(board_id, "board_id")
    tag_id = require_id(tag_id, "tag_id")
    patch = check_patch(patch, titles=("label",))
    stamp = now_iso()
    tags = session.read(tags_key(board_id))
    current = next((t for t in tags or () if t.id == tag_id), None)

    def speculate_cards(cards):
        if current is None:
            return cards
        return refresh_card_tags(cards, patch.apply(current, stamp))

    return await session.run(
        Transaction(
            name="update_tag",
            dispatch=lambda: session.remote.update_tag(tag_id, board_id, patch.present()),
            speculate={
                tags_key(board_id): lambda tags: patch_item(tags, tag_id, lambda t: patch.apply(t, stamp)),
                cards_key(board_id): speculate_cards,
            },
            reconcile={
                tags_key(board_id): merge_confirmed,
                cards_key(board_id): refresh_card_tags,
            },
        )
    )


async def delete_tag(session: Session, board_id: str, tag_id: str) -> Outcome:
    """Delete a tag and strip it from every cached card."""
    board_id = require_id(board_id, "board_id")
    tag_id = require_id(tag_id, "tag_id")

    return await session.run(
        Transaction(
            name="delete_tag",
            dispatch=lambda: session.remote.delete_tag(tag_id, board_id),
            speculate={
                tags_key(board_id): lambda tags: without(tags, tag_id),
                cards_key(board_id): lambda cards: strip_tag(cards, tag_id),
            },
        )
    )
