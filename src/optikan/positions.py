"""Dense position renumbering for ordered sibling collections.

Every function here is pure: it takes items carrying ``id`` and
``position`` and returns new lists, never mutating its input. Positions
are rewritten as ``base + index`` so a scope always holds a gap-free,
duplicate-free sequence.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable, Sequence, TypeVar

T = TypeVar("T")

COLUMN_BASE = 0
CARD_BASE = 0
SUBTASK_BASE = 1


def clamp_index(index: int, length: int) -> int:
    """Clamp index into [0, length]."""
    return max(0, min(index, length))


def ordered(items: Iterable[T]) -> list[T]:
    """Items sorted by position (stable for ties)."""
    return sorted(items, key=lambda item: item.position)


def renumber(items: Iterable[T], base: int = 0) -> list[T]:
    """Assign position = base + index. Items already in place are kept as-is."""
    result = []
    for i, item in enumerate(items):
        if item.position != base + i:
            item = replace(item, position=base + i)
        result.append(item)
    return result


def index_of(items: Sequence[Any], item_id: str) -> int:
    """Index of the item with item_id, or -1."""
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return -1


def insert(items: Iterable[T], item: T, target_index: int | None = None, base: int = 0) -> list[T]:
    """Insert item at target_index (None appends) and renumber."""
    result = list(items)
    target = len(result) if target_index is None else clamp_index(target_index, len(result))
    result.insert(target, item)
    return renumber(result, base)


def remove(items: Iterable[T], item_id: str, base: int = 0) -> list[T]:
    """Drop the item with item_id and renumber the rest."""
    return renumber([item for item in items if item.id != item_id], base)


def reorder(items: Iterable[T], item_id: str, target_index: int, base: int = 0) -> list[T]:
    """Move item_id to target_index within one scope.

    The target is clamped to the list without the moving item. An unknown
    item_id only renumbers.
    """
    result = list(items)
    idx = index_of(result, item_id)
    if idx == -1:
        return renumber(result, base)
    moving = result.pop(idx)
    result.insert(clamp_index(target_index, len(result)), moving)
    return renumber(result, base)


def transfer(
    source: Iterable[T],
    dest: Iterable[T],
    item_id: str,
    target_index: int,
    base: int = 0,
    reparent: Callable[[T], T] | None = None,
) -> tuple[list[T], list[T]]:
    """Move item_id from source to dest at target_index.

    Both sequences are renumbered independently. reparent patches the
    moving item's parent reference. If item_id is not in source, both
    sequences are only renumbered.
    """
    src = list(source)
    idx = index_of(src, item_id)
    if idx == -1:
        return renumber(src, base), renumber(dest, base)
    moving = src.pop(idx)
    if reparent is not None:
        moving = reparent(moving)
    return renumber(src, base), insert(dest, moving, target_index, base)


def scope_of(items: Iterable[T], scope: str, scope_attr: str) -> list[T]:
    """Ordered members of one scope of a flat collection."""
    return ordered(item for item in items if getattr(item, scope_attr) == scope)


def update_scopes(items: Iterable[T], scope_attr: str, scopes: dict[str, list[T]]) -> list[T]:
    """Rewrite the given scopes of a flat collection.

    Scopes keep the order in which they first appear; scopes not in
    ``scopes`` pass through untouched. New scopes are appended.
    """
    order: list[str] = []
    grouped: dict[str, list[T]] = {}
    for item in items:
        key = getattr(item, scope_attr)
        if key not in grouped:
            order.append(key)
            grouped[key] = []
        grouped[key].append(item)
    for key, members in scopes.items():
        if key not in grouped:
            order.append(key)
        grouped[key] = list(members)
    return [item for key in order for item in grouped[key]]


def move_between_scopes(
    items: Iterable[T],
    item_id: str,
    from_scope: str,
    to_scope: str,
    target_index: int,
    scope_attr: str,
    base: int = 0,
) -> list[T]:
    """Move item_id to to_scope at target_index in a flat collection.

    Same scope is a plain reorder (renumbered once). Otherwise both the
    source and destination scopes are renumbered and the moving item's
    ``scope_attr`` is set to to_scope.
    """
    items = list(items)
    source = scope_of(items, from_scope, scope_attr)
    if from_scope == to_scope:
        return update_scopes(items, scope_attr, {from_scope: reorder(source, item_id, target_index, base)})
    dest = scope_of(items, to_scope, scope_attr)
    new_source, new_dest = transfer(
        source,
        dest,
        item_id,
        target_index,
        base,
        reparent=lambda item: replace(item, **{scope_attr: to_scope}),
    )
    return update_scopes(items, scope_attr, {from_scope: new_source, to_scope: new_dest})
