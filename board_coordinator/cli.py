"""
Board Coordinator — CLI

Generate board content against the configured model and print the board.

Usage:
    # Fresh board on a topic
    python -m board_coordinator.cli board --topic "Space Exploration" --replace

    # Rewrite one section of a fresh board
    python -m board_coordinator.cli section 2 --topic "Space Exploration"

    # Show the merged configuration
    python -m board_coordinator.cli config
"""

import argparse
import asyncio
import json
import sys

from board_engine.config import load_config
from board_engine.logging import LoggingSink, configure_logging
from board_engine.providers import LangChainContentProvider, create_llm
from board_coordinator.session import BoardSession, OutcomeStatus


def _session(args) -> BoardSession:
    config = load_config(env=args.env)
    provider = LangChainContentProvider(create_llm(config, model=args.model))
    return BoardSession.from_config(provider, config=config, sink=LoggingSink(session="cli"))


def _finish(session: BoardSession, outcome) -> int:
    if outcome.status is not OutcomeStatus.APPLIED:
        print(f"Generation {outcome.status.value}: {outcome.error}", file=sys.stderr)
        return 1
    print(json.dumps(session.document.to_dict(), indent=2))
    return 0


def cmd_board(args) -> int:
    session = _session(args)
    outcome = asyncio.run(session.regenerate_board(
        args.topic, difficulty=args.difficulty, preserve=not args.replace,
    ))
    return _finish(session, outcome)


def cmd_section(args) -> int:
    session = _session(args)
    session.document.title = args.topic
    outcome = asyncio.run(session.regenerate_section(args.index, difficulty=args.difficulty))
    return _finish(session, outcome)


def cmd_config(args) -> int:
    print(json.dumps(load_config(env=args.env), indent=2, default=str))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Board Coordinator CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--env", default="", help="Config profile (overrides BG_ENV)")
    parser.add_argument("--log-level", default="WARNING")
    subs = parser.add_subparsers(dest="command", required=True)

    board_p = subs.add_parser("board", help="Generate a whole board")
    board_p.add_argument("--topic", "-t", required=True)
    board_p.add_argument("--difficulty", "-d", default="mixed",
                         choices=["easy", "medium", "hard", "mixed"])
    board_p.add_argument("--replace", action="store_true", help="Rebuild instead of merging")
    board_p.add_argument("--model", "-m", default=None)
    board_p.set_defaults(func=cmd_board)

    section_p = subs.add_parser("section", help="Generate one section")
    section_p.add_argument("index", type=int)
    section_p.add_argument("--topic", "-t", required=True)
    section_p.add_argument("--difficulty", "-d", default="mixed",
                           choices=["easy", "medium", "hard", "mixed"])
    section_p.add_argument("--model", "-m", default=None)
    section_p.set_defaults(func=cmd_section)

    config_p = subs.add_parser("config", help="Print the merged configuration")
    config_p.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
