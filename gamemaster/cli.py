"""Game master engine – unified CLI dispatcher.

All subcommands live in ``gamemaster/commands/*.py`` and expose a
``register(subparsers)`` function that adds themselves to argparse.
"""
from __future__ import annotations

import argparse
import logging
import sys

from gamemaster.commands.registry import register_all


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="gamemaster",
        description="Narrative game master engine: validate and replay turns",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine details to stderr")
    sub = parser.add_subparsers(dest="command")
    register_all(sub)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, stream=sys.stderr)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    # Each command stores a ``func`` on the namespace
    rc = args.func(args)
    sys.exit(rc or 0)
