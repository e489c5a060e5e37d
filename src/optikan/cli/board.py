"""Handlers for 'optikan board' commands."""

from optikan.cache.keys import boards_key, cards_key, columns_key
from optikan.cli._common import check, command, find_board, open_session, output_json, output_result, say
from optikan.ids import short_id
from optikan.models import to_dict
from optikan.ops.boards import archive_board, create_board, delete_board, rename_board
from optikan.patch import UNSET


@command
async def board_list(args) -> int:
    """List active boards with column and card counts."""
    async with open_session(args) as session:
        boards = await session.ensure(boards_key()) or ()
        items = []
        for board in boards:
            columns = await session.ensure(columns_key(board.id)) or ()
            cards = await session.ensure(cards_key(board.id)) or ()
            items.append({**to_dict(board), "columns": len(columns), "cards": len(cards)})

    if args.json:
        output_json(items)
    else:
        for b in items:
            cards = "card" if b["cards"] == 1 else "cards"
            say(f"{short_id(b['id'])}  {b['title']:<24} {b['columns']} columns, {b['cards']} {cards}")

    return 0


@command
async def board_add(args) -> int:
    """Create a board."""
    async with open_session(args) as session:
        await session.ensure(boards_key())
        outcome = check(
            await create_board(session, args.title, description=args.description, icon=args.icon)
        )
        await session.settle()
    board = outcome.value
    output_result(to_dict(board), f"Created board {short_id(board.id)} {board.title}", args.json)
    return 0


@command
async def board_rename(args) -> int:
    """Rename a board, optionally changing its description."""
    async with open_session(args) as session:
        board = await find_board(session, args.id)
        description = (args.description or None) if args.description is not None else UNSET
        check(await rename_board(session, board.id, args.title, description))
        await session.settle()
    output_result({"id": board.id, "title": args.title}, f"Renamed board {short_id(board.id)} to {args.title}", args.json)
    return 0


@command
async def board_archive(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.id)
        check(await archive_board(session, board.id))
        await session.settle()
    output_result({"id": board.id}, f"Archived board {short_id(board.id)} {board.title}", args.json)
    return 0


@command
async def board_delete(args) -> int:
    """Delete a board and everything on it."""
    async with open_session(args) as session:
        board = await find_board(session, args.id)
        check(await delete_board(session, board.id))
        await session.settle()
    output_result({"id": board.id}, f"Deleted board {short_id(board.id)} {board.title}", args.json)
    return 0
