"""Call contract of the remote persistence service.

The engine only ever talks to the service through these coroutines.
``update_*`` calls receive the supplied fields of a patch: a key that is
absent was not supplied, a key mapped to None clears the field.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, Sequence

from optikan.cache.keys import BOARDS, CARDS, COLUMNS, NOTES, TAGS, WORKSPACES, CacheKey
from optikan.cache.store import Loader
from optikan.models import Board, Card, Column, Note, Subtask, Tag, Workspace

Fields = Mapping[str, Any]


class RemoteService(Protocol):
    # --- bulk loaders ---

    async def load_workspaces(self) -> Sequence[Workspace]: ...

    async def load_boards(self) -> Sequence[Board]: ...

    async def load_columns(self, board_id: str) -> Sequence[Column]: ...

    async def load_cards(self, board_id: str) -> Sequence[Card]: ...

    async def load_tags(self, board_id: str) -> Sequence[Tag]: ...

    async def load_notes(self, board_id: str) -> Sequence[Note]: ...

    # --- workspaces ---

    async def create_workspace(self, id: str, name: str, color: str | None = None) -> Workspace: ...

    async def update_workspace(self, id: str, fields: Fields) -> Workspace: ...

    async def delete_workspace(self, id: str) -> None: ...

    # --- boards ---

    async def create_board(
        self,
        id: str,
        title: str,
        workspace_id: str | None = None,
        description: str | None = None,
        icon: str | None = None,
    ) -> None: ...

    async def update_board(self, id: str, fields: Fields) -> None: ...

    async def archive_board(self, id: str) -> None: ...

    async def delete_board(self, id: str) -> None: ...

    # --- columns ---

    async def create_column(
        self,
        board_id: str,
        id: str,
        title: str,
        position: int,
        color: str | None = None,
        icon: str | None = None,
        wip_limit: int | None = None,
        is_enabled: bool | None = None,
    ) -> None: ...

    async def move_column(self, board_id: str, column_id: str, target_index: int) -> None: ...

    async def update_column(self, id: str, board_id: str, fields: Fields) -> None: ...

    async def delete_column(self, id: str, board_id: str) -> None: ...

    # --- cards ---

    async def create_card(
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
    ) -> None: ...

    async def update_card(self, id: str, board_id: str, fields: Fields) -> None: ...

    async def delete_card(self, id: str, board_id: str) -> None: ...

    async def move_card(
        self,
        board_id: str,
        card_id: str,
        from_column_id: str,
        to_column_id: str,
        target_index: int,
    ) -> None: ...

    async def set_card_tags(self, card_id: str, board_id: str, tag_ids: Iterable[str]) -> Sequence[Tag]: ...

    # --- subtasks ---

    async def create_subtask(
        self,
        board_id: str,
        card_id: str,
        id: str,
        title: str,
        position: int | None = None,
    ) -> Subtask: ...

    async def update_subtask(self, id: str, board_id: str, card_id: str, fields: Fields) -> Subtask: ...

    async def delete_subtask(self, id: str, board_id: str, card_id: str) -> None: ...

    # --- tags ---

    async def create_tag(self, board_id: str, id: str, label: str, color: str | None = None) -> Tag: ...

    async def update_tag(self, id: str, board_id: str, fields: Fields) -> Tag: ...

    async def delete_tag(self, id: str, board_id: str) -> None: ...

    # --- notes ---

    async def create_note(self, board_id: str, id: str, title: str, content: str = "") -> Note: ...

    async def update_note(self, id: str, board_id: str, fields: Fields) -> None: ...

    async def delete_note(self, id: str, board_id: str) -> None: ...


def make_loader(remote: RemoteService) -> Loader:
    """Map cache keys onto the service's bulk loaders."""

    async def load(key: CacheKey):
        if key.kind == WORKSPACES:
            return await remote.load_workspaces()
        if key.kind == BOARDS:
            return await remote.load_boards()
        if key.kind == COLUMNS:
            return await remote.load_columns(key.scope)
        if key.kind == CARDS:
            return await remote.load_cards(key.scope)
        if key.kind == TAGS:
            return await remote.load_tags(key.scope)
        if key.kind == NOTES:
            return await remote.load_notes(key.scope)
        raise KeyError(f"no loader for {key}")

    return load
