"""Partial-update requests with an explicit "not supplied" marker.

A patch field holding ``UNSET`` leaves the entity's field untouched.
``None`` means "clear this field" and is only accepted for fields the
patch declares nullable.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar, TypeVar, Union

from optikan.errors import ValidationError
from optikan.models import now_iso

T = TypeVar("T")


class _Unset:
    """Type of the UNSET singleton."""

    _instance: ClassVar[_Unset | None] = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unset:
        return self

    def __deepcopy__(self, memo) -> _Unset:
        return self

    def __reduce__(self):
        return (_Unset, ())


UNSET = _Unset()

Maybe = Union[T, _Unset]


def is_set(value: Any) -> bool:
    """True if value was supplied (anything but UNSET, None included)."""
    return value is not UNSET


@dataclass(frozen=True)
class Patch:
    """Base for per-entity patch requests."""

    NULLABLE: ClassVar[frozenset[str]] = frozenset()

    def present(self) -> dict[str, Any]:
        """Fields that were supplied, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self) if is_set(getattr(self, f.name))}

    def validate(self) -> None:
        """Reject empty patches and None on non-nullable fields."""
        supplied = self.present()
        if not supplied:
            raise ValidationError("At least one field must be provided")
        for name, value in supplied.items():
            if value is None and name not in self.NULLABLE:
                raise ValidationError(f"{name} cannot be cleared")

    def apply(self, entity: T, stamp: str | None = None) -> T:
        """Return entity with the supplied fields overwritten."""
        changes = self.present()
        if not changes:
            return entity
        if hasattr(entity, "updated_at"):
            changes["updated_at"] = stamp or now_iso()
        return replace(entity, **changes)


@dataclass(frozen=True)
class WorkspacePatch(Patch):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"color"})

    name: Maybe[str] = UNSET
    color: Maybe[str | None] = UNSET


@dataclass(frozen=True)
class BoardPatch(Patch):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"description"})

    title: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    icon: Maybe[str] = UNSET


@dataclass(frozen=True)
class ColumnPatch(Patch):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"color", "icon"})

    title: Maybe[str] = UNSET
    color: Maybe[str | None] = UNSET
    icon: Maybe[str | None] = UNSET
    is_enabled: Maybe[bool] = UNSET


@dataclass(frozen=True)
class CardPatch(Patch):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"description", "due_date"})

    title: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    priority: Maybe[str] = UNSET
    due_date: Maybe[str | None] = UNSET


@dataclass(frozen=True)
class SubtaskPatch(Patch):
    """Subtask update. ``target_position`` reorders rather than overwrites."""

    title: Maybe[str] = UNSET
    is_completed: Maybe[bool] = UNSET
    target_position: Maybe[int] = UNSET

    def fields_only(self) -> SubtaskPatch:
        """The same patch without the reorder request."""
        return replace(self, target_position=UNSET)

    def apply(self, entity: T, stamp: str | None = None) -> T:
        return Patch.apply(self.fields_only(), entity, stamp)


@dataclass(frozen=True)
class TagPatch(Patch):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"color"})

    label: Maybe[str] = UNSET
    color: Maybe[str | None] = UNSET


@dataclass(frozen=True)
class NotePatch(Patch):
    title: Maybe[str] = UNSET
    content: Maybe[str] = UNSET
    pinned: Maybe[bool] = UNSET
