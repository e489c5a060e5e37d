"""Handlers for 'optikan column' commands."""

from optikan.cache.keys import cards_key, columns_key
from optikan.cli._common import (
    check,
    command,
    find_board,
    find_column,
    open_session,
    output_json,
    output_result,
    say,
    to_index,
)
from optikan.ids import short_id
from optikan.models import build_board_view, to_dict
from optikan.ops.columns import create_column, delete_column, move_column, rename_column


def format_column_line(c: dict) -> str:
    """Format a column summary dict as a text line."""
    cards = "card" if c["cards"] == 1 else "cards"
    wip = f" / {c['wip_limit']}" if c["wip_limit"] is not None else ""
    hidden = "  (disabled)" if not c["is_enabled"] else ""
    return f"{c['position'] + 1}  {short_id(c['id'])}  {c['title']:<16} {c['cards']}{wip} {cards}{hidden}"


@command
async def column_list(args) -> int:
    """List the columns of a board in order."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        view = build_board_view(
            board.id,
            await session.ensure(columns_key(board.id)),
            await session.ensure(cards_key(board.id)),
        )

    items = [{**to_dict(col), "cards": len(view.cards[col.id])} for col in view.columns]
    if args.json:
        output_json(items)
    else:
        for c in items:
            say(format_column_line(c))
    return 0


@command
async def column_add(args) -> int:
    """Create a column, at the end unless --position is given."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        await session.ensure(columns_key(board.id))
        outcome = check(
            await create_column(
                session,
                board.id,
                args.name,
                to_index(args.position),
                color=args.color,
                wip_limit=args.wip,
            )
        )
        await session.settle()
    column = outcome.value
    output_result(to_dict(column), f"Created column {short_id(column.id)} {column.title}", args.json)
    return 0


@command
async def column_move(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        column = await find_column(session, board, args.id)
        check(await move_column(session, board.id, column.id, to_index(args.position)))
        await session.settle()
    output_result(
        {"id": column.id, "position": args.position},
        f"Moved column {column.title} to position {args.position}",
        args.json,
    )
    return 0


@command
async def column_rename(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        column = await find_column(session, board, args.id)
        check(await rename_column(session, board.id, column.id, args.new_name))
        await session.settle()
    output_result(
        {"id": column.id, "title": args.new_name},
        f"Renamed column {column.title} to {args.new_name}",
        args.json,
    )
    return 0


@command
async def column_delete(args) -> int:
    """Delete an empty column."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        column = await find_column(session, board, args.id)
        check(await delete_column(session, board.id, column.id))
        await session.settle()
    output_result({"id": column.id}, f"Deleted column {column.title}", args.json)
    return 0
