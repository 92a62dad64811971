# src/toons_app/logging_setup.py

import sys
import logging
from pathlib import Path
from typing import Optional

import colorlog

LOG_FILE_NAME = "toons.log"

# verbosity (-q = -1, default = 0, -v = 1, -vv = 2) -> console level
_CONSOLE_LEVELS = {
    -1: logging.ERROR,
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def console_level(verbosity: int) -> int:
    verbosity = max(-1, min(2, verbosity))
    return _CONSOLE_LEVELS[verbosity]


class LibraryDebugFilter(logging.Filter):
    """Only let DEBUG records from our own packages into the log file."""

    def filter(self, record):
        if record.levelno > logging.DEBUG:
            return True
        return record.name.startswith(("toons_library", "toons_app"))


def setup_logging(verbosity: int = 0, log_dir: Optional[Path] = None) -> None:
    """
    Configure the root logger for the CLI.

    Console: colorlog on stderr, level from the verbosity toggle.
    File (when log_dir is given): everything from DEBUG up, with timestamps.
    Calling it again replaces the handlers it installed before.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_toons_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level(verbosity))
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    console_handler._toons_handler = True
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        file_handler = logging.FileHandler(Path(log_dir) / LOG_FILE_NAME, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        file_handler.addFilter(LibraryDebugFilter())
        file_handler._toons_handler = True
        root_logger.addHandler(file_handler)

    root_logger.setLevel(logging.DEBUG)

    # Silence noisy HTTP loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
