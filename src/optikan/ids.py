"""Client-side entity ids and short-id lookup."""

import uuid

SHORT_WIDTH = 8


def new_id() -> str:
    """A fresh opaque id for a speculative entity."""
    return str(uuid.uuid4())


def short_id(entity_id: str, width: int = SHORT_WIDTH) -> str:
    """Abbreviated id for display.

    "3f2b9c1e-8d0a-4c55-..." -> "3f2b9c1e"
    """
    return entity_id[:width]


def match_id(prefix: str, ids: list[str]) -> str | None:
    """Resolve an exact id or a unique prefix of one.

    Returns None when nothing matches. Raises KeyError listing the
    candidates when the prefix is ambiguous.
    """
    if prefix in ids:
        return prefix
    matches = [i for i in ids if i.startswith(prefix)]
    if len(matches) > 1:
        raise KeyError(f"'{prefix}' is ambiguous: {', '.join(short_id(m) for m in matches)}")
    return matches[0] if matches else None
