"""In-memory remote persistence service.

Implements the RemoteService contract with the server-side rules of the
real backend: target indices are clamped, sibling positions are
normalized after every structural change, WIP limits and non-empty
column deletes are refused. State can be persisted to a YAML file.

Test hooks: ``latency`` delays every call, ``fail_next`` queues a
rejection for an operation, ``hold`` returns an Event the next call of
an operation waits on.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import yaml

from optikan import positions
from optikan.errors import ConflictError, NotFoundError, RemoteError
from optikan.models import (
    DEFAULT_BOARD_ICON,
    PRIORITIES,
    Board,
    Card,
    Column,
    Note,
    Subtask,
    Tag,
    Workspace,
    from_dict,
    now_iso,
    to_dict,
)
from optikan.remote.base import Fields
from optikan.validate import MAX_TITLE_LENGTH

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

TABLES = (
    ("workspaces", Workspace),
    ("boards", Board),
    ("columns", Column),
    ("cards", Card),
    ("subtasks", Subtask),
    ("tags", Tag),
    ("notes", Note),
)


def _operation(mutates: bool = True):
    """Turn a synchronous handler into a remote call.

    The wrapper records the call, applies latency, gates and queued
    failures, then runs the handler. Mutations trigger autosave.
    """

    def decorator(func):
        name = func.__name__

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            await self._enter(name)
            result = func(self, *args, **kwargs)
            if mutates:
                self._changed()
            return result

        return wrapper

    return decorator


def _title(value: Any, what: str, operation: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise RemoteError(f"{what} cannot be empty.", operation=operation)
    if len(text) > MAX_TITLE_LENGTH:
        raise RemoteError(f"{what} too long (max {MAX_TITLE_LENGTH} characters)", operation=operation)
    return text


def _color(value: Any, what: str, operation: str) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if not HEX_COLOR.match(text):
        raise RemoteError(f"Invalid {what} color. Use hex format, e.g. #6366F1.", operation=operation)
    return text


def _reject_unknown(fields: Fields, allowed: set[str], operation: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise RemoteError(f"Unknown field(s): {', '.join(sorted(unknown))}", operation=operation)


class MemoryRemote:
    """Authoritative state held in plain dicts keyed by id."""

    def __init__(self, latency: float = 0.0, autosave: str | Path | None = None) -> None:
        self.latency = latency
        self.autosave = Path(autosave) if autosave else None
        self.workspaces: dict[str, Workspace] = {}
        self.boards: dict[str, Board] = {}
        self.columns: dict[str, Column] = {}
        self.cards: dict[str, Card] = {}
        self.subtasks: dict[str, Subtask] = {}
        self.tags: dict[str, Tag] = {}
        self.card_tags: dict[str, list[str]] = {}
        self.notes: dict[str, Note] = {}
        self.calls: list[str] = []
        self._failures: dict[str, list[BaseException]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    # --- test hooks ---

    def fail_next(self, operation: str, error: str | BaseException = "Rejected by server.") -> None:
        """Make the next call of operation raise error."""
        if isinstance(error, str):
            error = RemoteError(error, operation=operation)
        self._failures.setdefault(operation, []).append(error)

    def hold(self, operation: str) -> asyncio.Event:
        """Make the next call of operation wait until the returned Event is set."""
        event = asyncio.Event()
        self._gates[operation] = event
        return event

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self.latency:
            await asyncio.sleep(self.latency)
        gate = self._gates.pop(operation, None)
        if gate is not None:
            await gate.wait()
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _changed(self) -> None:
        if self.autosave is not None:
            self.save(self.autosave)

    # --- seeding and persistence ---

    def put(self, *entities: Any) -> None:
        """Store entities directly, bypassing validation.

        Cards carrying subtasks or tags have them split into their own
        tables.
        """
        for entity in entities:
            if isinstance(entity, Card):
                for sub in entity.subtasks:
                    self.subtasks[sub.id] = sub
                for tag in entity.tags:
                    self.tags.setdefault(tag.id, tag)
                if entity.tags:
                    self.card_tags[entity.id] = [t.id for t in entity.tags]
                self.cards[entity.id] = replace(entity, subtasks=(), tags=())
            elif isinstance(entity, Workspace):
                self.workspaces[entity.id] = entity
            elif isinstance(entity, Board):
                self.boards[entity.id] = entity
            elif isinstance(entity, Column):
                self.columns[entity.id] = entity
            elif isinstance(entity, Subtask):
                self.subtasks[entity.id] = entity
            elif isinstance(entity, Tag):
                self.tags[entity.id] = entity
            elif isinstance(entity, Note):
                self.notes[entity.id] = entity
            else:
                raise TypeError(f"cannot store {type(entity).__name__}")

    def to_data(self) -> dict[str, Any]:
        """Plain-dict dump of the whole state."""
        data: dict[str, Any] = {}
        for table, _ in TABLES:
            data[table] = [to_dict(entity) for entity in getattr(self, table).values()]
        for card in data["cards"]:
            card.pop("subtasks", None)
            card.pop("tags", None)
        data["card_tags"] = {card_id: list(ids) for card_id, ids in self.card_tags.items() if ids}
        return data

    @classmethod
    def from_data(cls, data: dict[str, Any] | None, **kwargs: Any) -> MemoryRemote:
        remote = cls(**kwargs)
        data = data or {}
        for table, entity_type in TABLES:
            for item in data.get(table) or ():
                remote.put(from_dict(entity_type, item))
        for card_id, ids in (data.get("card_tags") or {}).items():
            remote.card_tags[card_id] = list(ids)
        return remote

    @classmethod
    def load(cls, path: str | Path, **kwargs: Any) -> MemoryRemote:
        """Load state from a YAML file. A missing file gives an empty service."""
        path = Path(path)
        data = None
        if path.exists():
            data = yaml.safe_load(path.read_text()) or {}
        return cls.from_data(data, **kwargs)

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(self.to_data(), default_flow_style=False, sort_keys=False))
        logger.debug("saved state to %s", path)

    # --- lookups ---

    def _board(self, board_id: str, operation: str) -> Board:
        board = self.boards.get(board_id)
        if board is None:
            raise NotFoundError("Board not found.", operation=operation)
        return board

    def _column(self, column_id: str, board_id: str, operation: str) -> Column:
        column = self.columns.get(column_id)
        if column is None or column.board_id != board_id:
            raise NotFoundError("Column not found on this board.", operation=operation)
        return column

    def _card(self, card_id: str, board_id: str, operation: str) -> Card:
        card = self.cards.get(card_id)
        if card is None or card.board_id != board_id:
            raise NotFoundError("Card not found on this board.", operation=operation)
        return card

    def _tag(self, tag_id: str, board_id: str, operation: str) -> Tag:
        tag = self.tags.get(tag_id)
        if tag is None or tag.board_id != board_id:
            raise NotFoundError(f"Tag {tag_id} not found on this board.", operation=operation)
        return tag

    def _subtask(self, subtask_id: str, card_id: str, operation: str) -> Subtask:
        sub = self.subtasks.get(subtask_id)
        if sub is None or sub.card_id != card_id:
            raise NotFoundError("Subtask not found on this card.", operation=operation)
        return sub

    def _note(self, note_id: str, board_id: str, operation: str) -> Note:
        note = self.notes.get(note_id)
        if note is None or note.board_id != board_id:
            raise NotFoundError("Note not found on this board.", operation=operation)
        return note

    def _require_new(self, table: dict[str, Any], entity_id: str, operation: str) -> None:
        if entity_id in table:
            raise ConflictError(f"Id {entity_id} already exists.", operation=operation)

    def _board_columns(self, board_id: str) -> list[Column]:
        return positions.ordered(c for c in self.columns.values() if c.board_id == board_id)

    def _column_cards(self, column_id: str) -> list[Card]:
        return positions.ordered(
            c for c in self.cards.values() if c.column_id == column_id and c.archived_at is None
        )

    def _card_subtasks(self, card_id: str) -> list[Subtask]:
        return positions.ordered(s for s in self.subtasks.values() if s.card_id == card_id)

    def _store(self, table: dict[str, Any], items: Iterable[Any], touched: set[str] = frozenset()) -> None:
        stamp = now_iso()
        for item in items:
            previous = table.get(item.id)
            if previous is not None and previous.position != item.position or item.id in touched:
                item = replace(item, updated_at=stamp)
            table[item.id] = item

    def _check_wip(self, column: Column, operation: str) -> None:
        if column.wip_limit is None:
            return
        count = len(self._column_cards(column.id))
        if count >= column.wip_limit:
            raise ConflictError(
                f"Column '{column.title}' is at its WIP limit ({column.wip_limit}).", operation=operation
            )

    def _assemble(self, card: Card) -> Card:
        tags = tuple(self.tags[t] for t in self.card_tags.get(card.id, ()) if t in self.tags)
        return replace(card, subtasks=tuple(self._card_subtasks(card.id)), tags=tags)

    # --- bulk loaders ---

    @_operation(mutates=False)
    def load_workspaces(self) -> tuple[Workspace, ...]:
        return tuple(w for w in self.workspaces.values() if w.archived_at is None)

    @_operation(mutates=False)
    def load_boards(self) -> tuple[Board, ...]:
        return tuple(b for b in self.boards.values() if b.archived_at is None)

    @_operation(mutates=False)
    def load_columns(self, board_id: str) -> tuple[Column, ...]:
        self._board(board_id, "load_columns")
        return tuple(self._board_columns(board_id))

    @_operation(mutates=False)
    def load_cards(self, board_id: str) -> tuple[Card, ...]:
        self._board(board_id, "load_cards")
        result = []
        for column in self._board_columns(board_id):
            result.extend(self._assemble(card) for card in self._column_cards(column.id))
        return tuple(result)

    @_operation(mutates=False)
    def load_tags(self, board_id: str) -> tuple[Tag, ...]:
        self._board(board_id, "load_tags")
        return tuple(t for t in self.tags.values() if t.board_id == board_id)

    @_operation(mutates=False)
    def load_notes(self, board_id: str) -> tuple[Note, ...]:
        self._board(board_id, "load_notes")
        notes = [n for n in reversed(self.notes.values()) if n.board_id == board_id and n.archived_at is None]
        return tuple(sorted(notes, key=lambda n: not n.pinned))

    # --- workspaces ---

    @_operation()
    def create_workspace(self, id: str, name: str, color: str | None = None) -> Workspace:
        op = "create_workspace"
        self._require_new(self.workspaces, id, op)
        stamp = now_iso()
        workspace = Workspace(
            id=id,
            name=_title(name, "Workspace name", op),
            color=_color(color, "workspace", op),
            created_at=stamp,
            updated_at=stamp,
        )
        self.workspaces[id] = workspace
        return workspace

    @_operation()
    def update_workspace(self, id: str, fields: Fields) -> Workspace:
        op = "update_workspace"
        _reject_unknown(fields, {"name", "color"}, op)
        workspace = self.workspaces.get(id)
        if workspace is None:
            raise NotFoundError("Workspace not found.", operation=op)
        changes: dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = _title(fields["name"], "Workspace name", op)
        if "color" in fields:
            changes["color"] = _color(fields["color"], "workspace", op)
        workspace = replace(workspace, updated_at=now_iso(), **changes)
        self.workspaces[id] = workspace
        return workspace

    @_operation()
    def delete_workspace(self, id: str) -> None:
        op = "delete_workspace"
        if id not in self.workspaces:
            raise NotFoundError("Workspace not found.", operation=op)
        boards = [b for b in self.boards.values() if b.workspace_id == id]
        if boards:
            raise ConflictError(f"Workspace still has {len(boards)} board(s).", operation=op)
        del self.workspaces[id]

    # --- boards ---

    @_operation()
    def create_board(
        self,
        id: str,
        title: str,
        workspace_id: str | None = None,
        description: str | None = None,
        icon: str | None = None,
    ) -> None:
        op = "create_board"
        self._require_new(self.boards, id, op)
        if workspace_id is not None and workspace_id not in self.workspaces:
            raise NotFoundError("Workspace not found.", operation=op)
        stamp = now_iso()
        self.boards[id] = Board(
            id=id,
            title=_title(title, "Board title", op),
            workspace_id=workspace_id,
            description=description,
            icon=icon or DEFAULT_BOARD_ICON,
            created_at=stamp,
            updated_at=stamp,
        )

    @_operation()
    def update_board(self, id: str, fields: Fields) -> None:
        op = "update_board"
        _reject_unknown(fields, {"title", "description", "icon"}, op)
        board = self._board(id, op)
        changes = dict(fields)
        if "title" in changes:
            changes["title"] = _title(changes["title"], "Board title", op)
        if "icon" in changes:
            changes["icon"] = _title(changes["icon"], "Board icon", op)
        self.boards[id] = replace(board, updated_at=now_iso(), **changes)

    @_operation()
    def archive_board(self, id: str) -> None:
        board = self._board(id, "archive_board")
        stamp = now_iso()
        self.boards[id] = replace(board, archived_at=stamp, updated_at=stamp)

    @_operation()
    def delete_board(self, id: str) -> None:
        self._board(id, "delete_board")
        card_ids = {c.id for c in self.cards.values() if c.board_id == id}
        for table in (self.columns, self.cards, self.subtasks, self.tags, self.notes):
            for key in [k for k, v in table.items() if v.board_id == id]:
                del table[key]
        for card_id in card_ids:
            self.card_tags.pop(card_id, None)
        del self.boards[id]

    # --- columns ---

    @_operation()
    def create_column(
        self,
        board_id: str,
        id: str,
        title: str,
        position: int,
        color: str | None = None,
        icon: str | None = None,
        wip_limit: int | None = None,
        is_enabled: bool | None = None,
    ) -> None:
        op = "create_column"
        self._board(board_id, op)
        self._require_new(self.columns, id, op)
        if wip_limit is not None and wip_limit < 1:
            raise ConflictError("WIP limit must be a positive integer.", operation=op)
        stamp = now_iso()
        column = Column(
            id=id,
            board_id=board_id,
            title=_title(title, "Column name", op),
            position=position,
            color=_color(color, "column", op),
            icon=(icon or "").strip() or None,
            is_enabled=True if is_enabled is None else is_enabled,
            wip_limit=wip_limit,
            created_at=stamp,
            updated_at=stamp,
        )
        siblings = self._board_columns(board_id)
        self._store(self.columns, positions.insert(siblings, column, position, positions.COLUMN_BASE))

    @_operation()
    def move_column(self, board_id: str, column_id: str, target_index: int) -> None:
        op = "move_column"
        siblings = self._board_columns(board_id)
        if not siblings:
            raise NotFoundError("No columns found for this board.", operation=op)
        self._column(column_id, board_id, op)
        self._store(self.columns, positions.reorder(siblings, column_id, target_index, positions.COLUMN_BASE))

    @_operation()
    def update_column(self, id: str, board_id: str, fields: Fields) -> None:
        op = "update_column"
        _reject_unknown(fields, {"title", "color", "icon", "is_enabled"}, op)
        column = self._column(id, board_id, op)
        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = _title(fields["title"], "Column name", op)
        if "color" in fields:
            changes["color"] = _color(fields["color"], "column", op)
        if "icon" in fields:
            changes["icon"] = (fields["icon"] or "").strip() or None
        if "is_enabled" in fields:
            changes["is_enabled"] = bool(fields["is_enabled"])
        if changes:
            self.columns[id] = replace(column, updated_at=now_iso(), **changes)

    @_operation()
    def delete_column(self, id: str, board_id: str) -> None:
        op = "delete_column"
        self._column(id, board_id, op)
        count = len(self._column_cards(id))
        if count:
            raise ConflictError(
                f"Cannot delete a column that still holds {count} card(s). Move or delete them first.",
                operation=op,
            )
        del self.columns[id]
        self._store(self.columns, positions.renumber(self._board_columns(board_id), positions.COLUMN_BASE))

    # --- cards ---

    @_operation()
    def create_card(
        self,
        board_id: str,
        id: str,
        column_id: str,
        title: str,
        position: int,
        priority: str,
        description: str | None = None,
        due_date: str | None = None,
        tag_ids: Iterable[str] = (),
    ) -> None:
        op = "create_card"
        self._board(board_id, op)
        self._require_new(self.cards, id, op)
        column = self._column(column_id, board_id, op)
        if priority not in PRIORITIES:
            raise RemoteError(f"Invalid priority '{priority}'.", operation=op)
        tag_ids = list(dict.fromkeys(tag_ids))
        for tag_id in tag_ids:
            self._tag(tag_id, board_id, op)
        self._check_wip(column, op)
        stamp = now_iso()
        card = Card(
            id=id,
            board_id=board_id,
            column_id=column_id,
            title=_title(title, "Card title", op),
            position=position,
            priority=priority,
            description=description,
            due_date=due_date,
            created_at=stamp,
            updated_at=stamp,
        )
        siblings = self._column_cards(column_id)
        self._store(self.cards, positions.insert(siblings, card, position, positions.CARD_BASE))
        if tag_ids:
            self.card_tags[id] = tag_ids

    @_operation()
    def update_card(self, id: str, board_id: str, fields: Fields) -> None:
        op = "update_card"
        _reject_unknown(fields, {"title", "description", "priority", "due_date"}, op)
        card = self._card(id, board_id, op)
        changes = dict(fields)
        if "title" in changes:
            changes["title"] = _title(changes["title"], "Card title", op)
        if "priority" in changes and changes["priority"] not in PRIORITIES:
            raise RemoteError(f"Invalid priority '{changes['priority']}'.", operation=op)
        self.cards[id] = replace(card, updated_at=now_iso(), **changes)

    @_operation()
    def delete_card(self, id: str, board_id: str) -> None:
        card = self._card(id, board_id, "delete_card")
        del self.cards[id]
        self.card_tags.pop(id, None)
        for sub_id in [s.id for s in self.subtasks.values() if s.card_id == id]:
            del self.subtasks[sub_id]
        self._store(self.cards, positions.renumber(self._column_cards(card.column_id), positions.CARD_BASE))

    @_operation()
    def move_card(
        self,
        board_id: str,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        target_index: int,
    ) -> None:
        op = "move_card"
        card = self._card(card_id, board_id, op)
        if card.column_id != from_column_id:
            raise ConflictError("Card is not in the given source column.", operation=op)
        target = self._column(to_column_id, board_id, op)
        if from_column_id != to_column_id:
            self._check_wip(target, op)
        board_cards = [c for c in self.cards.values() if c.board_id == board_id and c.archived_at is None]
        moved = positions.move_between_scopes(
            board_cards,
            card_id,
            from_column_id,
            to_column_id,
            target_index,
            scope_attr="column_id",
            base=positions.CARD_BASE,
        )
        self._store(self.cards, moved, touched={card_id})

    @_operation()
    def set_card_tags(self, card_id: str, board_id: str, tag_ids: Iterable[str]) -> tuple[Tag, ...]:
        op = "set_card_tags"
        self._card(card_id, board_id, op)
        tag_ids = list(dict.fromkeys(tag_ids))
        tags = tuple(self._tag(tag_id, board_id, op) for tag_id in tag_ids)
        self.card_tags[card_id] = tag_ids
        return tags

    # --- subtasks ---

    @_operation()
    def create_subtask(
        self,
        board_id: str,
        card_id: str,
        id: str,
        title: str,
        position: int | None = None,
    ) -> Subtask:
        op = "create_subtask"
        self._card(card_id, board_id, op)
        self._require_new(self.subtasks, id, op)
        stamp = now_iso()
        sub = Subtask(
            id=id,
            board_id=board_id,
            card_id=card_id,
            title=_title(title, "Subtask title", op),
            position=0,
            created_at=stamp,
            updated_at=stamp,
        )
        siblings = self._card_subtasks(card_id)
        self._store(self.subtasks, positions.insert(siblings, sub, position, positions.SUBTASK_BASE))
        return self.subtasks[id]

    @_operation()
    def update_subtask(self, id: str, board_id: str, card_id: str, fields: Fields) -> Subtask:
        op = "update_subtask"
        _reject_unknown(fields, {"title", "is_completed", "target_position"}, op)
        self._card(card_id, board_id, op)
        sub = self._subtask(id, card_id, op)
        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = _title(fields["title"], "Subtask title", op)
        if "is_completed" in fields:
            changes["is_completed"] = bool(fields["is_completed"])
        if changes:
            self.subtasks[id] = replace(sub, updated_at=now_iso(), **changes)
        if "target_position" in fields:
            reordered = positions.reorder(
                self._card_subtasks(card_id), id, fields["target_position"], positions.SUBTASK_BASE
            )
            self._store(self.subtasks, reordered)
        return self.subtasks[id]

    @_operation()
    def delete_subtask(self, id: str, board_id: str, card_id: str) -> None:
        op = "delete_subtask"
        self._card(card_id, board_id, op)
        self._subtask(id, card_id, op)
        del self.subtasks[id]
        self._store(self.subtasks, positions.renumber(self._card_subtasks(card_id), positions.SUBTASK_BASE))

    # --- tags ---

    @_operation()
    def create_tag(self, board_id: str, id: str, label: str, color: str | None = None) -> Tag:
        op = "create_tag"
        self._board(board_id, op)
        self._require_new(self.tags, id, op)
        stamp = now_iso()
        tag = Tag(
            id=id,
            board_id=board_id,
            label=_title(label, "Tag label", op),
            color=_color(color, "tag", op),
            created_at=stamp,
            updated_at=stamp,
        )
        self.tags[id] = tag
        return tag

    @_operation()
    def update_tag(self, id: str, board_id: str, fields: Fields) -> Tag:
        op = "update_tag"
        _reject_unknown(fields, {"label", "color"}, op)
        tag = self._tag(id, board_id, op)
        changes: dict[str, Any] = {}
        if "label" in fields:
            changes["label"] = _title(fields["label"], "Tag label", op)
        if "color" in fields:
            changes["color"] = _color(fields["color"], "tag", op)
        tag = replace(tag, updated_at=now_iso(), **changes)
        self.tags[id] = tag
        return tag

    @_operation()
    def delete_tag(self, id: str, board_id: str) -> None:
        self._tag(id, board_id, "delete_tag")
        del self.tags[id]
        for card_id, ids in self.card_tags.items():
            if id in ids:
                self.card_tags[card_id] = [t for t in ids if t != id]

    # --- notes ---

    @_operation()
    def create_note(self, board_id: str, id: str, title: str, content: str = "") -> Note:
        op = "create_note"
        self._board(board_id, op)
        self._require_new(self.notes, id, op)
        stamp = now_iso()
        note = Note(
            id=id,
            board_id=board_id,
            title=_title(title, "Note title", op),
            content=content or "",
            created_at=stamp,
            updated_at=stamp,
        )
        self.notes[id] = note
        return note

    @_operation()
    def update_note(self, id: str, board_id: str, fields: Fields) -> None:
        op = "update_note"
        _reject_unknown(fields, {"title", "content", "pinned"}, op)
        note = self._note(id, board_id, op)
        changes = dict(fields)
        if "title" in changes:
            changes["title"] = _title(changes["title"], "Note title", op)
        self.notes[id] = replace(note, updated_at=now_iso(), **changes)

    @_operation()
    def delete_note(self, id: str, board_id: str) -> None:
        self._note(id, board_id, "delete_note")
        del self.notes[id]
