"""Collection snapshot cache."""

from optikan.cache.keys import (
    CacheKey,
    board_keys,
    boards_key,
    cards_key,
    columns_key,
    notes_key,
    tags_key,
    workspaces_key,
)
from optikan.cache.store import CacheStore

__all__ = [
    "CacheKey",
    "CacheStore",
    "board_keys",
    "boards_key",
    "cards_key",
    "columns_key",
    "notes_key",
    "tags_key",
    "workspaces_key",
]
