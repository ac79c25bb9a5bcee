"""
app.py
------
Entry point for the finance tracker.

Usage:

    python app.py console [--file transactions.txt]
    python app.py bot [--token TOKEN]

Both front-ends work over one in-memory store. The console saves it back to
the data file on exit; the bot keeps it for the lifetime of the process.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import config
from logging_setup import configure_logging, get_logger
from processor import TransactionProcessor

logger = get_logger("app")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Personal finance tracker")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, ...). Defaults to LOG_LEVEL from the environment.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    console_parser = subparsers.add_parser("console", help="Run the interactive console menu")
    console_parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Transactions file to import at start; also used as the save target on exit.",
    )

    bot_parser = subparsers.add_parser("bot", help="Run the Telegram bot")
    bot_parser.add_argument(
        "--token",
        type=str,
        default=None,
        help="Bot token. Defaults to TELEGRAM_BOT_TOKEN.",
    )
    bot_parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Optional transactions file to preload.",
    )
    return parser.parse_args(argv)


def run_console(args: argparse.Namespace) -> int:
    from console import ConsoleApp

    processor = TransactionProcessor()
    if args.file:
        processor.load_from_path(args.file)
    ConsoleApp(processor, data_file=args.file).run()
    return 0


def run_bot(args: argparse.Namespace) -> int:
    from telegram_bot import FinanceBot

    token = args.token or config.TELEGRAM_BOT_TOKEN
    if not token:
        logger.error("No bot token: pass --token or set TELEGRAM_BOT_TOKEN")
        print("Missing bot token. Set TELEGRAM_BOT_TOKEN or pass --token.", file=sys.stderr)
        return 2

    processor = TransactionProcessor()
    if args.file:
        processor.load_from_path(args.file)
    FinanceBot(processor).run(token)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "console":
        return run_console(args)
    return run_bot(args)


if __name__ == "__main__":
    sys.exit(main())
