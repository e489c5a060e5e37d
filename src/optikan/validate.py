"""Client-side input checks, run before a transaction begins."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, TypeVar

from optikan.errors import ValidationError
from optikan.models import PRIORITIES
from optikan.patch import Patch

MAX_TITLE_LENGTH = 200

P = TypeVar("P", bound=Patch)


def require_id(value: Any, name: str = "id") -> str:
    """Non-empty string id, stripped."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def require_title(value: Any, name: str = "Title") -> str:
    """Non-empty title, stripped, at most MAX_TITLE_LENGTH characters."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    value = value.strip()
    if len(value) > MAX_TITLE_LENGTH:
        raise ValidationError(f"{name} too long (max {MAX_TITLE_LENGTH} characters)")
    return value


def optional_text(value: Any, name: str = "value") -> str | None:
    """None or a stripped string."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be text")
    return value.strip()


def require_index(value: Any, name: str = "position") -> int:
    """Non-negative integer (bools rejected)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer")
    return value


def optional_index(value: Any, name: str = "position") -> int | None:
    if value is None:
        return None
    return require_index(value, name)


def require_priority(value: Any) -> str:
    if value not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")
    return value


def require_flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be true or false")
    return value


def require_ids(values: Iterable[Any], name: str = "ids") -> tuple[str, ...]:
    return tuple(require_id(v, name) for v in values)


def check_patch(patch: P, titles: Iterable[str] = ("title",)) -> P:
    """Validate a patch and return it with its text fields normalized.

    Title-like fields come back stripped. A blank nullable color or icon
    becomes None, which is what the service stores for it.
    """
    patch.validate()
    supplied = patch.present()
    changes: dict[str, Any] = {}
    for name in titles:
        if name in supplied:
            changes[name] = require_title(supplied[name], name.capitalize())
    for name in ("color", "icon"):
        if name in supplied and name in patch.NULLABLE:
            changes[name] = optional_text(supplied[name], name) or None
    if "priority" in supplied:
        require_priority(supplied["priority"])
    for name in ("is_enabled", "is_completed", "pinned"):
        if name in supplied:
            require_flag(supplied[name], name)
    if "target_position" in supplied:
        require_index(supplied["target_position"], "target_position")
    return replace(patch, **changes) if changes else patch
