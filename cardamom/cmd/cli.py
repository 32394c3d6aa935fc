"""cardamom command-line tool."""

from __future__ import annotations

import argparse
import asyncio
import sys

from cardamom.config import Config
from cardamom.debug import setup_logging
from cardamom.errors import CardamomError, error_chain
from cardamom.sync import init, sync


def print_error(err: BaseException) -> None:
    """Print an error followed by one indented line per cause."""
    errs = error_chain(err)
    print(next(errs), file=sys.stderr)
    for cause in errs:
        print(f" ↳ {cause}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cardamom",
        description="One-way CardDAV contact synchronization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the sync directory and discover the address book
  cardamom init

  # Download every card and rebuild the sync cache
  cardamom sync
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="configuration file (default: looked up in the XDG config directories)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log progress",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (logs request/response bodies with formatted XML)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", aliases=["i"], help="Inits local sync dir")
    subparsers.add_parser("sync", aliases=["s"], help="Synchronizes cards")
    return parser


async def run(args: argparse.Namespace) -> None:
    """Run the selected subcommand."""
    config = Config.from_file(args.config)

    if args.command in ("init", "i"):
        path = await init(config)
        print(f"Address book: {path}")
        print(f"Sync directory: {config.sync_dir}")
    elif args.command in ("sync", "s"):
        report = await sync(config)
        print(f"Synchronized {len(report.cache.entries)} cards from {report.path}")
        if report.skipped:
            print(f"Skipped {len(report.skipped)} items:")
            for item in report.skipped:
                print(f"  {item.ref}: {item.reason}")


def main() -> None:
    """Main entry point for cardamom."""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(verbose=args.verbose, debug=args.debug)

    try:
        asyncio.run(run(args))
    except CardamomError as e:
        print_error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
