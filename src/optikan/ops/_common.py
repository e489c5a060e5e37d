"""Helpers shared by the mutation modules."""

from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

from optikan import positions

T = TypeVar("T")


def patch_item(items: Iterable[T], item_id: str, change: Callable[[T], T]) -> list[T]:
    """Apply change to the item with item_id; other items pass through."""
    return [change(item) if item.id == item_id else item for item in items]


def without(items: Iterable[T], item_id: str) -> list[T]:
    return [item for item in items if item.id != item_id]


def merge_confirmed(items: Iterable[T], confirmed: T, base: int | None = None) -> list[T]:
    """Swap the speculative item for the server-confirmed one.

    The confirmed item keeps the speculative item's slot. If it is not in
    the list it is appended. With a base, the list is renumbered.
    """
    items = list(items)
    idx = positions.index_of(items, confirmed.id)
    if idx == -1:
        items.append(confirmed)
    else:
        items[idx] = confirmed
    if base is not None:
        items = positions.renumber(items, base)
    return items


def in_scope(cards: Iterable[Any], scope: str, change: Callable[[list], list], scope_attr: str = "column_id") -> list:
    """Rewrite the ordered members of one scope of a flat collection."""
    cards = list(cards)
    members = positions.scope_of(cards, scope, scope_attr)
    return positions.update_scopes(cards, scope_attr, {scope: change(members)})
