"""Console and optional file logging for the playmark command line tool.

User-facing notices and diagnostics share stderr. Notices travel through the
``playmark.notice`` logger and print as bare messages; every other record is
prefixed with ``playmark: <level>:`` and only shown at or above the console
threshold. Setting ``PLAYMARK_LOG_FILE`` (or passing ``log_file``) also keeps
a full debug trace on disk.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, TextIO

__all__ = ["NOTICE_LOGGER", "notify", "setup_logging"]

NOTICE_LOGGER = "playmark.notice"
_LOG_FILE_ENV = "PLAYMARK_LOG_FILE"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "markdown_it")
_installed: List[logging.Handler] = []


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if record.name == NOTICE_LOGGER:
            return record.getMessage()
        return f"playmark: {record.levelname.lower()}: {super().format(record)}"


class _ConsoleFilter(logging.Filter):
    """Pass every notice, and other records from ``threshold`` up."""

    def __init__(self, threshold: int) -> None:
        super().__init__()
        self.threshold = threshold

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == NOTICE_LOGGER or record.levelno >= self.threshold


def setup_logging(
    level: int = logging.WARNING,
    *,
    stream: TextIO | None = None,
    log_file: Path | str | None = None,
) -> List[logging.Handler]:
    """Install the console handler (and file handler) on the root logger.

    Calling again replaces the handlers installed by the previous call, so
    the console always writes to the current ``sys.stderr``.
    """

    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(_ConsoleFormatter())
    console.addFilter(_ConsoleFilter(level))
    _installed.append(console)

    target = log_file or os.environ.get(_LOG_FILE_ENV)
    if target:
        path = Path(target).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        _installed.append(file_handler)

    for handler in _installed:
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if target else min(level, logging.INFO))
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return list(_installed)


def notify(message: str) -> None:
    """Show ``message`` to the user on the console stream."""

    logging.getLogger(NOTICE_LOGGER).info("%s", message)
