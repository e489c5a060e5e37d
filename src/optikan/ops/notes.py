"""Board notes. New notes go to the top of the list."""

from __future__ import annotations

from optikan.cache.keys import notes_key
from optikan.ids import new_id
from optikan.models import Note, now_iso
from optikan.ops._common import merge_confirmed, patch_item, without
from optikan.patch import NotePatch
from optikan.session import Session
from optikan.transaction import Outcome, Transaction
from optikan.validate import check_patch, optional_text, require_id, require_title


async def create_note(
    session: Session,
    board_id: str,
    title: str,
    content: str = "",
    *,
    note_id: str | None = None,
) -> Outcome:
    board_id = require_id(board_id, "board_id")
    title = require_title(title, "Note title")
    content = optional_text(content, "content") or ""
    note_id = require_id(note_id) if note_id is not None else new_id()
    stamp = now_iso()
    note = Note(id=note_id, board_id=board_id, title=title, content=content, created_at=stamp, updated_at=stamp)
    key = notes_key(board_id)

    return await session.run(
        Transaction(
            name="create_note",
            dispatch=lambda: session.remote.create_note(board_id, note_id, title, content),
            speculate={key: lambda notes: [note, *notes]},
            reconcile={key: merge_confirmed},
        )
    )


async def update_note(session: Session, board_id: str, note_id: str, patch: NotePatch) -> Outcome:
    board_id = require_id(board_id, "board_id")
    note_id = require_id(note_id, "note_id")
    patch = check_patch(patch, titles=("title",))
    stamp = now_iso()

    return await session.run(
        Transaction(
            name="update_note",
            dispatch=lambda: session.remote.update_note(note_id, board_id, patch.present()),
            speculate={notes_key(board_id): lambda notes: patch_item(notes, note_id, lambda n: patch.apply(n, stamp))},
        )
    )


async def delete_note(session: Session, board_id: str, note_id: str) -> Outcome:
    board_id = require_id(board_id, "board_id")
    note_id = require_id(note_id, "note_id")

    return await session.run(
        Transaction(
            name="delete_note",
            dispatch=lambda: session.remote.delete_note(note_id, board_id),
            speculate={notes_key(board_id): lambda notes: without(notes, note_id)},
        )
    )
