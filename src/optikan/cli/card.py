"""Handlers for 'optikan card' commands."""

from optikan.cache.keys import cards_key, columns_key, tags_key
from optikan.cli._common import (
    check,
    command,
    fail,
    find_board,
    find_card,
    find_column,
    find_tag,
    open_session,
    output_json,
    output_result,
    say,
    to_index,
)
from optikan.ids import short_id
from optikan.models import build_board_view, find, to_dict
from optikan.ops.cards import create_card, delete_card, move_card, set_card_tags, update_card
from optikan.patch import UNSET, CardPatch


def format_card_line(card, indent: str = "  ") -> str:
    done = sum(1 for s in card.subtasks if s.is_completed)
    subtasks = f"  [{done}/{len(card.subtasks)}]" if card.subtasks else ""
    tags = "  " + " ".join(f"#{t.label}" for t in card.tags) if card.tags else ""
    return f"{indent}{short_id(card.id)}  {card.title}  ({card.priority}){subtasks}{tags}"


@command
async def card_list(args) -> int:
    """List cards grouped by column."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        column = await find_column(session, board, args.column) if args.column else None
        view = build_board_view(
            board.id,
            await session.ensure(columns_key(board.id)),
            await session.ensure(cards_key(board.id)),
        )

    columns = [c for c in view.columns if column is None or c.id == column.id]
    if args.json:
        items = [
            {**to_dict(card), "column": {"id": col.id, "title": col.title}}
            for col in columns
            for card in view.cards[col.id]
        ]
        output_json(items)
    else:
        for col in columns:
            say(f"{short_id(col.id)}  {col.title}")
            for card in view.cards[col.id]:
                say(format_card_line(card))
    return 0


@command
async def card_add(args) -> int:
    """Create a card in a column."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        column = await find_column(session, board, args.column)
        tag_ids = [(await find_tag(session, board, ref)).id for ref in args.tag or ()]
        await session.ensure(cards_key(board.id))
        outcome = check(
            await create_card(
                session,
                board.id,
                column.id,
                args.title,
                to_index(args.position),
                priority=args.priority,
                description=args.description,
                due_date=args.due,
                tag_ids=tag_ids,
            )
        )
        await session.settle()
        card = find(session.read(cards_key(board.id)) or (), outcome.value.id) or outcome.value

    output_result(
        {**to_dict(card), "column": {"id": column.id, "title": column.title}},
        f"Created card {short_id(card.id)} in {column.title}",
        args.json,
    )
    return 0


@command
async def card_move(args) -> int:
    """Move a card to a column (bottom unless --position is given)."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.id)
        target = await find_column(session, board, args.column)
        position = to_index(args.position)
        if position is None:
            cards = session.read(cards_key(board.id)) or ()
            position = sum(1 for c in cards if c.column_id == target.id and c.id != card.id)
        check(await move_card(session, board.id, card.id, card.column_id, target.id, position))
        await session.settle()

    output_result(
        {"id": card.id, "column": {"id": target.id, "title": target.title}, "position": position + 1},
        f"Moved card {short_id(card.id)} to {target.title}",
        args.json,
    )
    return 0


@command
async def card_set(args) -> int:
    """Update card fields."""
    patch = CardPatch(
        title=args.title if args.title is not None else UNSET,
        description=None if args.clear_description else (args.description if args.description is not None else UNSET),
        priority=args.priority if args.priority is not None else UNSET,
        due_date=None if args.clear_due else (args.due if args.due is not None else UNSET),
    )
    if not patch.present():
        fail("Nothing to change. Pass --title, --description, --priority or --due.")
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.id)
        check(await update_card(session, board.id, card.id, patch))
        await session.settle()
        card = find(session.read(cards_key(board.id)) or (), card.id) or card

    output_result(to_dict(card), f"Updated card {short_id(card.id)}", args.json)
    return 0


@command
async def card_delete(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.id)
        check(await delete_card(session, board.id, card.id))
        await session.settle()
    output_result({"id": card.id}, f"Deleted card {short_id(card.id)} {card.title}", args.json)
    return 0


@command
async def card_tag(args) -> int:
    """Replace the tags on a card. No tags clears them."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        card = await find_card(session, board, args.id)
        await session.ensure(tags_key(board.id))
        tag_ids = [(await find_tag(session, board, ref)).id for ref in args.tags]
        outcome = check(await set_card_tags(session, board.id, card.id, tag_ids))
        await session.settle()

    labels = [t.label for t in outcome.value]
    output_result(
        {"id": card.id, "tags": [to_dict(t) for t in outcome.value]},
        f"Tagged card {short_id(card.id)}: {', '.join(labels) or '(none)'}",
        args.json,
    )
    return 0
