"""
CLI (Command Line Interface).

Starts the monitor:

    ktkbot <pushover api key> <pushover group key> [options]

Both keys may instead come from the environment (or a .env file):

    PUSHOVER_API_KEY=...
    PUSHOVER_GROUP_KEY=...

Options:
    -l/--log-level        info | warn | error (default: info)
    -d/--log-directory    directory for log files (default: logs)
    -e/--events-file      file to save known events to (default: events.json)
    -f/--fetch-interval   seconds between fetches (default: 120)
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import threading
from pathlib import Path
from typing import Callable

from dotenv import dotenv_values

from ktkbot import __version__
from ktkbot.errors import KtkbotError
from ktkbot.log import init_logger
from ktkbot.monitor import Monitor
from ktkbot.notify import Notifier, PushoverKey, PushoverKeyError

logger = logging.getLogger(__name__)

API_KEY_ENV = "PUSHOVER_API_KEY"
GROUP_KEY_ENV = "PUSHOVER_GROUP_KEY"

_UINT_RE = re.compile(r"[0-9]{1,19}", re.ASCII)
MAX_FETCH_INTERVAL = int(threading.TIMEOUT_MAX)


# ---------------------------------------------------------------------------
# Argument validators
# ---------------------------------------------------------------------------


def _length(min_len: int, max_len: int) -> Callable[[str], str]:
    """
    Build an argparse `type` that accepts strings of min_len..max_len characters.
    """
    if min_len > max_len:
        raise ValueError("length max must be greater than or equal to min.")

    def check(s: str) -> str:
        if not min_len <= len(s) <= max_len:
            raise argparse.ArgumentTypeError(
                f"Invalid length - must be between {min_len} and {max_len} (inclusive) characters long"
            )
        return s

    return check


def _uint(s: str) -> int:
    if not _UINT_RE.fullmatch(s):
        raise argparse.ArgumentTypeError("Invalid uint - must consist of 1-19 digits")
    return int(s)


def _fetch_interval(s: str) -> int:
    """
    Seconds between fetches: a uint that time.sleep() can still take.
    """
    seconds = _uint(s)
    if seconds > MAX_FETCH_INTERVAL:
        raise argparse.ArgumentTypeError(f"Invalid fetch interval - must be at most {MAX_FETCH_INTERVAL} seconds")
    return seconds


def _pushover_key(s: str) -> PushoverKey:
    try:
        return PushoverKey(s)
    except PushoverKeyError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _env() -> dict[str, str]:
    """
    ./.env values overridden by the process environment.
    """
    return {
        **{k: v for k, v in dotenv_values(".env").items() if v is not None},
        **os.environ,
    }


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ktkbot", description="Sends KTK event push notifications.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "pushover_api_key",
        nargs="?",
        type=_pushover_key,
        metavar="PUSHOVER_API_KEY",
        help=f"The API key to use for sending Pushover notifications (or ${API_KEY_ENV}).",
    )
    parser.add_argument(
        "pushover_group_key",
        nargs="?",
        type=_pushover_key,
        metavar="PUSHOVER_GROUP_KEY",
        help=f"The group key to use for sending Pushover notifications (or ${GROUP_KEY_ENV}).",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        choices=["info", "warn", "error"],
        default="info",
        help="Sets the level of logging.",
    )
    parser.add_argument(
        "-d",
        "--log-directory",
        type=_length(1, 64),
        default="logs",
        metavar="DIRECTORY",
        help="Sets the directory to put log files in.",
    )
    parser.add_argument(
        "-e",
        "--events-file",
        type=_length(1, 64),
        default="events.json",
        metavar="FILE",
        help="Sets the file to save events to.",
    )
    parser.add_argument(
        "-f",
        "--fetch-interval",
        type=_fetch_interval,
        default=120,
        metavar="SECONDS",
        help="Sets the delay in between fetching events.",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse and validate arguments, filling missing keys from the environment.

    Exits with status 2 (argparse usage error) if a key is missing or invalid.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    env = _env()
    for attr, var in (("pushover_api_key", API_KEY_ENV), ("pushover_group_key", GROUP_KEY_ENV)):
        if getattr(args, attr) is not None:
            continue
        raw = env.get(var)
        if not raw:
            parser.error(f"missing {attr.upper()} (pass it as an argument or set ${var})")
        try:
            setattr(args, attr, PushoverKey(raw))
        except PushoverKeyError as exc:
            parser.error(f"invalid ${var}: {exc}")

    args.log_directory = Path(args.log_directory)
    args.events_file = Path(args.events_file)
    return args


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Runs until the process is terminated, or exits
    with status 1 on a fatal error.
    """
    args = parse_args(argv)
    init_logger(args.log_level, args.log_directory)

    monitor = Monitor(
        events_file=args.events_file,
        notifier=Notifier(args.pushover_api_key, args.pushover_group_key),
        fetch_interval=args.fetch_interval,
    )

    try:
        monitor.run_forever()
    except KtkbotError as exc:
        logger.critical("Fatal error, stopping: %s", exc, exc_info=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping.")
        raise SystemExit(0)
