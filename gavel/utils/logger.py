"""
Logging for Gavel.

Every engine module logs under the ``gavel`` namespace
(``gavel.engine``, ``gavel.settlement``, ...). Handlers are installed once
on the ``gavel`` logger: a colored console handler, plus ``gavel.log``
when file logging is on.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_NAME = "gavel"
CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class GavelLogger:
    """Installs the ``gavel`` handlers and hands out subsystem loggers."""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
    ):
        """
        Install handlers on the ``gavel`` logger. Later calls are no-ops
        until ``reset()``.

        Args:
            level: Threshold for both handlers
            log_dir: Where ``gavel.log`` goes (default ./logs)
            log_to_file: Also write a plain-text log file
        """
        if cls._initialized:
            return

        root_logger = logging.getLogger(ROOT_NAME)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LEVEL_COLORS)
        )
        root_logger.addHandler(console_handler)

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)
            file_handler = logging.FileHandler(cls._log_dir / f"{ROOT_NAME}.log")
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Close and drop installed handlers so setup() can run again."""
        root_logger = logging.getLogger(ROOT_NAME)
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()
        cls._initialized = False
        cls._log_dir = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for one subsystem, e.g. ``get_logger("ledger")``."""
        if not cls._initialized:
            cls.setup()
        return logging.getLogger(f"{ROOT_NAME}.{name}")


def get_logger(name: str) -> logging.Logger:
    return GavelLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    GavelLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
