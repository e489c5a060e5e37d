"""Composite cache keys: entity kind plus scope identifier."""

from __future__ import annotations

from dataclasses import dataclass

BOARDS = "boards"
WORKSPACES = "workspaces"
COLUMNS = "columns"
CARDS = "cards"
TAGS = "tags"
NOTES = "notes"

BOARD_SCOPED = (COLUMNS, CARDS, TAGS, NOTES)


@dataclass(frozen=True)
class CacheKey:
    """Identifies one cached collection, e.g. ``cards:board-42``."""

    kind: str
    scope: str | None = None

    def __str__(self) -> str:
        return f"{self.kind}:{self.scope}" if self.scope is not None else self.kind

    @classmethod
    def parse(cls, text: str) -> CacheKey:
        """Inverse of str(): ``"cards:b1"`` -> CacheKey("cards", "b1")."""
        kind, sep, scope = text.partition(":")
        return cls(kind, scope if sep else None)


def boards_key() -> CacheKey:
    return CacheKey(BOARDS)


def workspaces_key() -> CacheKey:
    return CacheKey(WORKSPACES)


def columns_key(board_id: str) -> CacheKey:
    return CacheKey(COLUMNS, board_id)


def cards_key(board_id: str) -> CacheKey:
    return CacheKey(CARDS, board_id)


def tags_key(board_id: str) -> CacheKey:
    return CacheKey(TAGS, board_id)


def notes_key(board_id: str) -> CacheKey:
    return CacheKey(NOTES, board_id)


def board_keys(board_id: str) -> tuple[CacheKey, ...]:
    """Every key scoped to one board."""
    return tuple(CacheKey(kind, board_id) for kind in BOARD_SCOPED)
