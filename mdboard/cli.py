"""
mdboard: repo-local CLI for a markdown task board.

The board is a single markdown file with ``## TODO``, ``## BLOCKED`` and
``## DONE`` sections; old DONE items roll over into weekly archive files.

Typical usage:

  mdboard create --title "Fix login bug" --owner human:alice
  mdboard block 20250811-fix-login-bug --reason "waiting on infra" --review 2025-08-20
  mdboard complete 20250811-fix-login-bug --links "pr:#42"
  mdboard archive
  mdboard lint

Exit codes: 0 success, 1 error, 2 board busy (another mutation holds the lock).
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .board import Board
from .config import load_config
from .errors import BoardError, Busy, MalformedItemLine
from .items import parse_item
from .lint import lint_file
from .prcheck import EXAMPLE, check_pr_description

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BUSY = 2


def cmd_create(board: Board, args: argparse.Namespace) -> int:
    item = board.create(
        args.title,
        args.owner,
        args.due,
        section=args.section,
        reason=args.reason,
        review=args.review,
        slug=args.slug,
    )
    print(f"Created: {item.id}")
    return EXIT_OK


def cmd_complete(board: Board, args: argparse.Namespace) -> int:
    item = board.complete(args.item_id, args.links)
    print(f"Completed: {item.id}")
    return EXIT_OK


def cmd_block(board: Board, args: argparse.Namespace) -> int:
    item = board.block(args.item_id, args.reason, args.review)
    print(f"Blocked: {item.id}")
    return EXIT_OK


def cmd_unblock(board: Board, args: argparse.Namespace) -> int:
    item = board.unblock(args.item_id)
    print(f"Unblocked: {item.id}")
    return EXIT_OK


def cmd_move(board: Board, args: argparse.Namespace) -> int:
    item = board.move(args.item_id, args.to)
    print(f"Moved: {item.id} -> {args.to.strip().upper()}")
    return EXIT_OK


def cmd_edit(board: Board, args: argparse.Namespace) -> int:
    item = board.edit(
        args.item_id,
        title=args.title,
        owner=args.owner,
        due=args.due,
        links=args.links,
        clear_due=args.clear_due,
        reason=args.reason,
        review=args.review,
    )
    print(f"Edited: {item.id}")
    return EXIT_OK


def cmd_list(board: Board, args: argparse.Namespace) -> int:
    sections = board.list()
    if args.json:
        out = {}
        for name, lines in sections.items():
            entries = []
            for line in lines:
                try:
                    entries.append(parse_item(line).to_dict())
                except MalformedItemLine as e:
                    entries.append({"raw": line, "error": e.reason})
            out[name] = entries
        print(json.dumps(out, indent=2, ensure_ascii=False))
        return EXIT_OK

    for name, lines in sections.items():
        print(f"\n## {name}")
        for line in lines:
            print(line)
    return EXIT_OK


def cmd_archive(board: Board, args: argparse.Namespace) -> int:
    result = board.archive(args.keep)
    if not result.count:
        print("Nothing to archive")
    else:
        print(f"Archived {result.count} item(s) -> {result.path}")
    return EXIT_OK


def cmd_lint(board: Board, args: argparse.Namespace) -> int:
    try:
        report = lint_file(board.path)
    except OSError as e:
        print(f"ERROR: Cannot read {board.path}: {e}", file=sys.stderr)
        return EXIT_ERROR

    for w in report.warnings:
        print(f"WARNING: {w}", file=sys.stderr)
    if not report.ok:
        for e in report.errors:
            print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    if args.verbose:
        print("OK: board format is valid")
    return EXIT_OK


def cmd_check_pr(board: Board, args: argparse.Namespace) -> int:
    text = args.description if args.description is not None else sys.stdin.read()
    result = check_pr_description(text, board.config.board_path, board.config.archive_dir)
    for w in result.warnings:
        print(f"WARNING: {w}", file=sys.stderr)
    if not result.ok:
        for e in result.errors:
            print(f"ERROR: {e}", file=sys.stderr)
        print(f"\nExample: {EXAMPLE!r}", file=sys.stderr)
        return EXIT_ERROR
    print("OK: PR description looks good")
    return EXIT_OK


def cmd_clean_lock(board: Board, args: argparse.Namespace) -> int:
    if board.clean_lock():
        print(f"Cleaned stale lock file {board.config.lock_file}")
    else:
        print("No stale lock to clean")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mdboard", description="Markdown task board")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--root", default=".", help="Board root directory (default: current directory)")
    parser.add_argument("--config", help="Config file (default: <root>/.boardrc.yaml if present)")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("create", help="Create a TODO item (or a BLOCKED one with --section BLOCKED)")
    p.add_argument("--title", required=True)
    p.add_argument("--owner", required=True, help="ai:<name> or human:<name>")
    p.add_argument("--due", help="Due date, YYYY-MM-DD (UTC)")
    p.add_argument("--slug", help="Override the slug part of the generated id")
    p.add_argument("--section", default="TODO", help="TODO (default) or BLOCKED")
    p.add_argument("--reason", help="Blocked reason (with --section BLOCKED)")
    p.add_argument("--review", help="Review date, YYYY-MM-DD (with --section BLOCKED)")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("complete", help="Mark an item done and move it to DONE")
    p.add_argument("item_id")
    p.add_argument("--links", help="Links parenthetical, e.g. 'pr:#42 | commit:abc123'")
    p.set_defaults(func=cmd_complete)

    p = sub.add_parser("block", help="Move an item to BLOCKED")
    p.add_argument("item_id")
    p.add_argument("--reason", required=True)
    p.add_argument("--review", required=True, help="Review date, YYYY-MM-DD (UTC)")
    p.set_defaults(func=cmd_block)

    p = sub.add_parser("unblock", help="Move a BLOCKED item back to TODO")
    p.add_argument("item_id")
    p.set_defaults(func=cmd_unblock)

    p = sub.add_parser("move", help="Move an item to TODO or BLOCKED")
    p.add_argument("item_id")
    p.add_argument("--to", required=True, help="TODO or BLOCKED")
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("edit", help="Edit an item in place")
    p.add_argument("item_id")
    p.add_argument("--title")
    p.add_argument("--owner")
    p.add_argument("--due")
    p.add_argument("--clear-due", action="store_true", help="Remove the due date")
    p.add_argument("--links")
    p.add_argument("--reason", help="New blocked reason (BLOCKED items only)")
    p.add_argument("--review", help="New review date, YYYY-MM-DD (BLOCKED items only)")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("list", help="Print the three sections")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("archive", help="Move old DONE items into this week's archive file")
    p.add_argument("--keep", type=int, help="DONE items to keep on the board (default: config done_keep)")
    p.set_defaults(func=cmd_archive)

    p = sub.add_parser("lint", help="Check the board format")
    p.set_defaults(func=cmd_lint)

    p = sub.add_parser("check-pr", help="Validate a PR description's board:<id> reference")
    p.add_argument("description", nargs="?", help="PR description (default: read stdin)")
    p.set_defaults(func=cmd_check_pr)

    p = sub.add_parser("clean-lock", help="Remove a stale lock file")
    p.set_defaults(func=cmd_clean_lock)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        board = Board(load_config(Path(args.root), Path(args.config) if args.config else None))
        return args.func(board, args)
    except Busy as e:
        print(f"BUSY: {e}", file=sys.stderr)
        return EXIT_BUSY
    except (BoardError, OSError, UnicodeDecodeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
