"""CLI argument parser and dispatch for optikan."""

import argparse

from optikan.cli.board import board_add, board_archive, board_delete, board_list, board_rename
from optikan.cli.card import card_add, card_delete, card_list, card_move, card_set, card_tag
from optikan.cli.column import column_add, column_delete, column_list, column_move, column_rename
from optikan.cli.subtask import subtask_add, subtask_delete, subtask_done
from optikan.cli.tag import tag_add, tag_delete, tag_list
from optikan.models import PRIORITIES


def build_parser() -> argparse.ArgumentParser:
    """Build the full CLI argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--data", help="Board data file (default: from config, else board.yaml)")
    common.add_argument("--config", help="Config file (default: optikan.yaml if present)")
    common.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    common.add_argument("-v", "--verbose", action="store_true", help="Log engine activity to stderr")

    scoped = argparse.ArgumentParser(add_help=False, parents=[common])
    scoped.add_argument("--board", help="Board ID, ID prefix or title (default: the only board)")

    parser = argparse.ArgumentParser(
        prog="optikan",
        description="Kanban boards with optimistic updates",
        parents=[common],
    )

    nouns = parser.add_subparsers(dest="noun")

    # --- board ---
    board_p = nouns.add_parser("board", help="Board operations", parents=[common])
    board_verbs = board_p.add_subparsers(dest="verb")

    board_list_p = board_verbs.add_parser("list", help="List boards", parents=[common])
    board_list_p.set_defaults(func=board_list)

    board_add_p = board_verbs.add_parser("add", help="Create a board", parents=[common])
    board_add_p.add_argument("title", help="Board title")
    board_add_p.add_argument("--description", help="Board description")
    board_add_p.add_argument("--icon", help="Icon name")
    board_add_p.set_defaults(func=board_add)

    board_rename_p = board_verbs.add_parser("rename", help="Rename a board", parents=[common])
    board_rename_p.add_argument("id", help="Board ID or title")
    board_rename_p.add_argument("title", help="New title")
    board_rename_p.add_argument("--description", help="New description ('' clears it)")
    board_rename_p.set_defaults(func=board_rename)

    board_archive_p = board_verbs.add_parser("archive", help="Archive a board", parents=[common])
    board_archive_p.add_argument("id", help="Board ID or title")
    board_archive_p.set_defaults(func=board_archive)

    board_delete_p = board_verbs.add_parser("delete", help="Delete a board and its contents", parents=[common])
    board_delete_p.add_argument("id", help="Board ID or title")
    board_delete_p.set_defaults(func=board_delete)

    # board with no verb = list
    board_p.set_defaults(func=board_list)

    # --- column ---
    col_p = nouns.add_parser("column", help="Column operations", parents=[scoped])
    col_verbs = col_p.add_subparsers(dest="verb")

    col_list_p = col_verbs.add_parser("list", help="List columns", parents=[scoped])
    col_list_p.set_defaults(func=column_list)

    col_add_p = col_verbs.add_parser("add", help="Create a column", parents=[scoped])
    col_add_p.add_argument("name", help="Column name")
    col_add_p.add_argument("--position", type=int, help="Position (1-indexed, default: last)")
    col_add_p.add_argument("--color", help="Hex color, e.g. #6366F1")
    col_add_p.add_argument("--wip", type=int, help="Work-in-progress limit")
    col_add_p.set_defaults(func=column_add)

    col_move_p = col_verbs.add_parser("move", help="Move a column", parents=[scoped])
    col_move_p.add_argument("id", help="Column ID or name")
    col_move_p.add_argument("--position", type=int, required=True, help="New position (1-indexed)")
    col_move_p.set_defaults(func=column_move)

    col_rename_p = col_verbs.add_parser("rename", help="Rename a column", parents=[scoped])
    col_rename_p.add_argument("id", help="Column ID or name")
    col_rename_p.add_argument("new_name", help="New column name")
    col_rename_p.set_defaults(func=column_rename)

    col_delete_p = col_verbs.add_parser("delete", help="Delete an empty column", parents=[scoped])
    col_delete_p.add_argument("id", help="Column ID or name")
    col_delete_p.set_defaults(func=column_delete)

    # column with no verb = list
    col_p.set_defaults(func=column_list)

    # --- card ---
    card_p = nouns.add_parser("card", help="Card operations", parents=[scoped])
    card_verbs = card_p.add_subparsers(dest="verb")

    card_list_p = card_verbs.add_parser("list", help="List cards", parents=[scoped])
    card_list_p.add_argument("--column", dest="column", help="Filter by column")
    card_list_p.set_defaults(func=card_list)

    card_add_p = card_verbs.add_parser("add", help="Create a card", parents=[scoped])
    card_add_p.add_argument("title", help="Card title")
    card_add_p.add_argument("--column", dest="column", required=True, help="Target column")
    card_add_p.add_argument("--position", type=int, help="Position in column (1-indexed, default: last)")
    card_add_p.add_argument("--priority", choices=PRIORITIES, default="medium", help="Priority (default: medium)")
    card_add_p.add_argument("--description", help="Card description")
    card_add_p.add_argument("--due", help="Due date (YYYY-MM-DD)")
    card_add_p.add_argument("--tag", action="append", help="Tag ID or label (repeatable)")
    card_add_p.set_defaults(func=card_add)

    card_move_p = card_verbs.add_parser("move", help="Move a card", parents=[scoped])
    card_move_p.add_argument("id", help="Card ID or title")
    card_move_p.add_argument("--column", dest="column", required=True, help="Target column")
    card_move_p.add_argument("--position", type=int, help="Position in column (1-indexed)")
    card_move_p.set_defaults(func=card_move)

    card_set_p = card_verbs.add_parser("set", help="Update card fields", parents=[scoped])
    card_set_p.add_argument("id", help="Card ID or title")
    card_set_p.add_argument("--title", help="New title")
    card_set_p.add_argument("--description", help="New description")
    card_set_p.add_argument("--clear-description", action="store_true", help="Remove the description")
    card_set_p.add_argument("--priority", choices=PRIORITIES, help="New priority")
    card_set_p.add_argument("--due", help="New due date (YYYY-MM-DD)")
    card_set_p.add_argument("--clear-due", action="store_true", help="Remove the due date")
    card_set_p.set_defaults(func=card_set)

    card_delete_p = card_verbs.add_parser("delete", help="Delete a card", parents=[scoped])
    card_delete_p.add_argument("id", help="Card ID or title")
    card_delete_p.set_defaults(func=card_delete)

    card_tag_p = card_verbs.add_parser("tag", help="Replace a card's tags", parents=[scoped])
    card_tag_p.add_argument("id", help="Card ID or title")
    card_tag_p.add_argument("tags", nargs="*", help="Tag IDs or labels (none clears)")
    card_tag_p.set_defaults(func=card_tag)

    # card with no verb = list
    card_p.set_defaults(func=card_list, column=None)

    # --- subtask ---
    sub_p = nouns.add_parser("subtask", help="Subtask operations", parents=[scoped])
    sub_verbs = sub_p.add_subparsers(dest="verb")

    sub_add_p = sub_verbs.add_parser("add", help="Add a subtask to a card", parents=[scoped])
    sub_add_p.add_argument("card", help="Card ID or title")
    sub_add_p.add_argument("title", help="Subtask title")
    sub_add_p.add_argument("--position", type=int, help="Position (1-indexed, default: last)")
    sub_add_p.set_defaults(func=subtask_add)

    sub_done_p = sub_verbs.add_parser("done", help="Complete a subtask", parents=[scoped])
    sub_done_p.add_argument("card", help="Card ID or title")
    sub_done_p.add_argument("subtask", help="Subtask ID or number")
    sub_done_p.add_argument("--undo", action="store_true", help="Mark as not done")
    sub_done_p.set_defaults(func=subtask_done)

    sub_delete_p = sub_verbs.add_parser("delete", help="Delete a subtask", parents=[scoped])
    sub_delete_p.add_argument("card", help="Card ID or title")
    sub_delete_p.add_argument("subtask", help="Subtask ID or number")
    sub_delete_p.set_defaults(func=subtask_delete)

    # --- tag ---
    tag_p = nouns.add_parser("tag", help="Tag operations", parents=[scoped])
    tag_verbs = tag_p.add_subparsers(dest="verb")

    tag_list_p = tag_verbs.add_parser("list", help="List tags", parents=[scoped])
    tag_list_p.set_defaults(func=tag_list)

    tag_add_p = tag_verbs.add_parser("add", help="Create a tag", parents=[scoped])
    tag_add_p.add_argument("label", help="Tag label")
    tag_add_p.add_argument("--color", help="Hex color, e.g. #22C55E")
    tag_add_p.set_defaults(func=tag_add)

    tag_delete_p = tag_verbs.add_parser("delete", help="Delete a tag", parents=[scoped])
    tag_delete_p.add_argument("id", help="Tag ID or label")
    tag_delete_p.set_defaults(func=tag_delete)

    # tag with no verb = list
    tag_p.set_defaults(func=tag_list)

    return parser
