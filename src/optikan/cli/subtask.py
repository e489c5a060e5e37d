"""Handlers for 'optikan subtask' commands."""

from optikan.cli._common import (
    check,
    command,
    fail,
    find_board,
    find_card,
    open_session,
    output_result,
    to_index,
)
from optikan.ids import match_id, short_id
from optikan.models import to_dict
from optikan.ops.subtasks import create_subtask, delete_subtask, toggle_subtask


def find_subtask(card, ref: str):
    """Lookup a subtask by id prefix or 1-indexed position on the card."""
    subtasks = sorted(card.subtasks, key=lambda s: s.position)
    if ref.isdigit() and 1 <= int(ref) <= len(subtasks):
        return subtasks[int(ref) - 1]
    try:
        found = match_id(ref, [s.id for s in subtasks])
    except KeyError as e:
        fail(e.args[0])
    if found is None:
        fail(f"Subtask '{ref}' not found on card {short_id(card.id)}.")
    return next(s for s in subtasks if s.id == found)


@command
async def subtask_add(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.card)
        outcome = check(await create_subtask(session, board.id, card.id, args.title, to_index(args.position)))
        await session.settle()
    sub = outcome.value
    output_result(to_dict(sub), f"Added subtask {sub.position}. {sub.title} to card {short_id(card.id)}", args.json)
    return 0


@command
async def subtask_done(args) -> int:
    """Mark a subtask completed, or open again with --undo."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.card)
        sub = find_subtask(card, args.subtask)
        outcome = check(await toggle_subtask(session, board.id, card.id, sub.id, not args.undo))
        await session.settle()
    sub = outcome.value
    state = "done" if sub.is_completed else "open"
    output_result(to_dict(sub), f"Subtask {sub.title} is {state}", args.json)
    return 0


@command
async def subtask_delete(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.card)
        sub = find_subtask(card, args.subtask)
        check(await delete_subtask(session, board.id, card.id, sub.id))
        await session.settle()
    output_result({"id": sub.id}, f"Deleted subtask {sub.title}", args.json)
    return 0
