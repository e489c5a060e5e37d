"""Resolve card/tag associations against the cached tag collection."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from optikan.models import Card, Tag


def resolve_tags(tag_ids: Iterable[str], tags: Iterable[Tag] | None) -> tuple[Tag, ...]:
    """Tag objects for tag_ids, in request order.

    Ids missing from tags are dropped, never synthesized. Duplicate ids
    resolve once. An unknown collection (None) resolves to nothing.
    """
    if tags is None:
        return ()
    by_id = {tag.id: tag for tag in tags}
    seen: set[str] = set()
    resolved = []
    for tag_id in tag_ids:
        if tag_id in seen or tag_id not in by_id:
            continue
        seen.add(tag_id)
        resolved.append(by_id[tag_id])
    return tuple(resolved)


def refresh_card_tags(cards: Iterable[Card], tag: Tag) -> list[Card]:
    """Swap in the new version of tag on every card that carries it."""
    result = []
    for card in cards:
        if any(t.id == tag.id for t in card.tags):
            card = replace(card, tags=tuple(tag if t.id == tag.id else t for t in card.tags))
        result.append(card)
    return result


def strip_tag(cards: Iterable[Card], tag_id: str) -> list[Card]:
    """Remove tag_id from every card that carries it."""
    result = []
    for card in cards:
        if any(t.id == tag_id for t in card.tags):
            card = replace(card, tags=tuple(t for t in card.tags if t.id != tag_id))
        result.append(card)
    return result
