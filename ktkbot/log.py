"""
Logger setup.

Everything is logged to a daily rotated file in the log directory
(the 7 newest files are kept). INFO and above is also shown on the
console through rich.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

LOG_FILE_NAME = "ktkbot.log"
LOG_ENV_VAR = "KTKBOT_LOG"
KEEP_LOG_FILES = 7

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"


# Handlers installed by init_logger, so a later call removes exactly these.
_handlers: list[logging.Handler] = []


def resolve_level(level: str) -> int:
    """
    Map a level name to a logging level. KTKBOT_LOG, if set, wins.
    """
    name = os.environ.get(LOG_ENV_VAR) or level
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {name!r}") from None


def reset_logger() -> None:
    """
    Remove and close the handlers installed by init_logger.
    """
    root = logging.getLogger()
    while _handlers:
        handler = _handlers.pop()
        root.removeHandler(handler)
        handler.close()


def init_logger(level: str = "info", directory: str | Path = "logs") -> logging.Logger:
    """
    Configure the root logger and return it.

    Calling this again replaces the handlers installed by the previous call.
    """
    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    reset_logger()

    file_handler = TimedRotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=KEEP_LOG_FILES,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    console_handler = RichHandler(level=logging.INFO, show_path=False)

    for handler in (file_handler, console_handler):
        root.addHandler(handler)
        _handlers.append(handler)

    return root
