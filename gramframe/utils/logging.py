"""
Logging for GramFrame.

Every module logs under the ``gramframe`` logger; ``setup_logging`` routes
it to a Rich console on stderr and, when asked, to a plain-text file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "gramframe"

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Path | str | None = None) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the ``gramframe`` logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR)
        log_file: File that additionally receives DEBUG and above

    Returns:
        The ``gramframe`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)
    logger.setLevel(level)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, placed under the ``gramframe`` hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LogCapture(logging.Handler):
    """Collect ``gramframe`` log records inside a ``with`` block."""

    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records: list[logging.LogRecord] = []
        self._logger = logging.getLogger(ROOT_LOGGER_NAME)
        self._previous_level = logging.NOTSET

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def __enter__(self) -> LogCapture:
        self._previous_level = self._logger.level
        self._logger.setLevel(logging.DEBUG)
        self._logger.addHandler(self)
        return self

    def __exit__(self, *exc) -> None:
        self._logger.removeHandler(self)
        self._logger.setLevel(self._previous_level)

    def get_messages(self, level: int | None = None) -> list[str]:
        """Captured messages, optionally only those logged at ``level``."""
        return [r.getMessage() for r in self.records if level is None or r.levelno == level]
