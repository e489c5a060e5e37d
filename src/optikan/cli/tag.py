"""Handlers for 'optikan tag' commands."""

from optikan.cache.keys import cards_key, tags_key
from optikan.cli._common import (
    check,
    command,
    find_board,
    find_tag,
    open_session,
    output_json,
    output_result,
    say,
)
from optikan.ids import short_id
from optikan.models import to_dict
from optikan.ops.tags import create_tag, delete_tag


@command
async def tag_list(args) -> int:
    """List tags with the number of cards carrying each."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        tags = await session.ensure(tags_key(board.id)) or ()
        cards = await session.ensure(cards_key(board.id)) or ()

    items = [{**to_dict(t), "cards": sum(1 for c in cards if any(x.id == t.id for x in c.tags))} for t in tags]
    if args.json:
        output_json(items)
    else:
        for t in items:
            color = f"  {t['color']}" if t["color"] else ""
            say(f"{short_id(t['id'])}  {t['label']:<16} {t['cards']} cards{color}")
    return 0


@command
async def tag_add(args) -> int:
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        await session.ensure(tags_key(board.id))
        outcome = check(await create_tag(session, board.id, args.label, args.color))
        await session.settle()
    tag = outcome.value
    output_result(to_dict(tag), f"Created tag {short_id(tag.id)} {tag.label}", args.json)
    return 0


@command
async def tag_delete(args) -> int:
    """Delete a tag; cards carrying it lose it."""
    async with open_session(args) as session:
        board = await find_board(session, args.board)
        tag = await find_tag(session, board, args.id)
        await session.ensure(cards_key(board.id))
        check(await delete_tag(session, board.id, tag.id))
        await session.settle()
    output_result({"id": tag.id}, f"Deleted tag {tag.label}", args.json)
    return 0
