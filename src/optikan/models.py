"""Data models for optikan entities.

Entities are frozen dataclasses. A collection snapshot is a tuple of
entities, so snapshots compare by value and are only ever replaced
wholesale.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

PRIORITIES = ("low", "medium", "high")
DEFAULT_PRIORITY = "medium"
DEFAULT_BOARD_ICON = "Folder"


def now_iso() -> str:
    """Current UTC time as ``2024-01-31T12:00:00.000Z``."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


@dataclass(frozen=True)
class Workspace:
    id: str
    name: str
    color: str | None = None
    icon_path: str | None = None
    created_at: str = ""
    updated_at: str = ""
    archived_at: str | None = None


@dataclass(frozen=True)
class Board:
    id: str
    title: str
    workspace_id: str | None = None
    description: str | None = None
    icon: str = DEFAULT_BOARD_ICON
    created_at: str = ""
    updated_at: str = ""
    archived_at: str | None = None


@dataclass(frozen=True)
class Column:
    id: str
    board_id: str
    title: str
    position: int
    color: str | None = None
    icon: str | None = None
    is_enabled: bool = True
    wip_limit: int | None = None
    created_at: str = ""
    updated_at: str = ""
    archived_at: str | None = None


@dataclass(frozen=True)
class Tag:
    id: str
    board_id: str
    label: str
    color: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Subtask:
    id: str
    board_id: str
    card_id: str
    title: str
    position: int
    is_completed: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Card:
    id: str
    board_id: str
    column_id: str
    title: str
    position: int
    priority: str = DEFAULT_PRIORITY
    description: str | None = None
    due_date: str | None = None
    subtasks: tuple[Subtask, ...] = ()
    tags: tuple[Tag, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    archived_at: str | None = None


@dataclass(frozen=True)
class Note:
    id: str
    board_id: str
    title: str
    content: str = ""
    pinned: bool = False
    tags: tuple[str, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    archived_at: str | None = None


ENTITY_TYPES = {
    "workspace": Workspace,
    "board": Board,
    "column": Column,
    "tag": Tag,
    "subtask": Subtask,
    "card": Card,
    "note": Note,
}


def to_dict(entity: Any) -> dict[str, Any]:
    """Convert an entity to plain dicts/lists (for YAML and JSON output)."""
    data = asdict(entity)
    for key, value in data.items():
        if isinstance(value, tuple):
            data[key] = list(value)
    return data


def from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Build an entity of type cls from a plain dict, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in known}
    if cls is Card:
        kwargs["subtasks"] = tuple(from_dict(Subtask, s) for s in kwargs.get("subtasks") or ())
        kwargs["tags"] = tuple(from_dict(Tag, t) for t in kwargs.get("tags") or ())
    elif cls is Note:
        kwargs["tags"] = tuple(kwargs.get("tags") or ())
    return cls(**kwargs)


def find(items, item_id: str):
    """Return the item with the given id from a snapshot, or None."""
    for item in items:
        if item.id == item_id:
            return item
    return None


@dataclass
class BoardView:
    """Columns of a board with their cards, ordered for display."""

    board_id: str
    columns: list[Column] = field(default_factory=list)
    cards: dict[str, list[Card]] = field(default_factory=dict)


def build_board_view(board_id: str, columns, cards) -> BoardView:
    """Group cards under their columns, both ordered by position."""
    view = BoardView(board_id=board_id)
    view.columns = sorted(columns or (), key=lambda c: c.position)
    view.cards = {col.id: [] for col in view.columns}
    for card in sorted(cards or (), key=lambda c: c.position):
        view.cards.setdefault(card.column_id, []).append(card)
    return view
