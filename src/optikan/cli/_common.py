"""Shared helpers for CLI command handlers."""

from __future__ import annotations

import asyncio
import functools
import json
import sys
from pathlib import Path

from rich.console import Console

from optikan.cache.keys import boards_key, cards_key, columns_key, tags_key
from optikan.config import load_config
from optikan.errors import OptikanError
from optikan.ids import match_id, short_id
from optikan.models import Board, Card, Column, Tag
from optikan.session import Session
from optikan.transaction import Outcome


class CommandError(Exception):
    """A command cannot continue; the message goes to the user."""


def command(func):
    """Run an async handler to completion and map errors to exit code 1."""

    @functools.wraps(func)
    def wrapper(args) -> int:
        try:
            return asyncio.run(func(args))
        except (CommandError, OptikanError) as e:
            error(str(e), args.json)

    return wrapper


def open_session(args) -> Session:
    """Session over the data file named by --data or the config file."""
    config = load_config(getattr(args, "config", None))
    if getattr(args, "data", None):
        config.data_path = Path(args.data)
    return Session.from_config(config)


def fail(message: str) -> None:
    raise CommandError(message)


def check(outcome: Outcome) -> Outcome:
    """Return a successful outcome; turn a rolled back one into an error."""
    if not outcome.ok:
        fail(outcome.message)
    return outcome


def _lookup(ref: str, items, label, kind: str, available: bool = True):
    by_id = {item.id: item for item in items}
    try:
        found = match_id(ref, list(by_id))
    except KeyError as e:
        fail(e.args[0])
    if found is not None:
        return by_id[found]
    named = [item for item in items if label(item).casefold() == ref.casefold()]
    if len(named) == 1:
        return named[0]
    msg = f"{kind} '{ref}' not found."
    if available and items:
        msg += " Available:\n" + "\n".join(f"  {short_id(i.id)}  {label(i)}" for i in items)
    fail(msg)


async def find_board(session: Session, ref: str | None) -> Board:
    """Lookup a board by id, id prefix or title. None picks the only board."""
    boards = list(await session.ensure(boards_key()) or ())
    if ref is None:
        if len(boards) == 1:
            return boards[0]
        if not boards:
            fail("No boards yet. Create one with 'optikan board add'.")
        fail("Several boards exist; pass --board.")
    return _lookup(ref, boards, lambda b: b.title, "Board")


async def find_column(session: Session, board: Board, ref: str) -> Column:
    columns = sorted(await session.ensure(columns_key(board.id)) or (), key=lambda c: c.position)
    return _lookup(ref, columns, lambda c: c.title, "Column")


async def find_card(session: Session, board: Board, ref: str) -> Card:
    cards = list(await session.ensure(cards_key(board.id)) or ())
    return _lookup(ref, cards, lambda c: c.title, "Card", available=False)


async def find_tag(session: Session, board: Board, ref: str) -> Tag:
    tags = list(await session.ensure(tags_key(board.id)) or ())
    return _lookup(ref, tags, lambda t: t.label, "Tag")


def to_index(position: int | None) -> int | None:
    """1-indexed CLI position to a 0-based index."""
    if position is None:
        return None
    if position < 1:
        fail("--position is 1-indexed")
    return position - 1


console = Console(highlight=False, soft_wrap=True, emoji=False)
err_console = Console(stderr=True, highlight=False, soft_wrap=True, emoji=False)


def say(text: str) -> None:
    """Print plain text (no markup) to stdout."""
    console.print(text, markup=False)


def output_json(data: dict | list) -> None:
    """Write JSON to stdout."""
    console.print(json.dumps(data, indent=2), markup=False)


def output_result(data: dict, text: str, json_mode: bool) -> None:
    """Output mutation result as JSON or plain text."""
    if json_mode:
        output_json(data)
    else:
        say(text)


def error(message: str, json_mode: bool) -> None:
    """Print error to stderr and exit 1."""
    if json_mode:
        err_console.print(json.dumps({"error": message}), markup=False)
    else:
        err_console.print(f"error: {message}", markup=False)
    sys.exit(1)
