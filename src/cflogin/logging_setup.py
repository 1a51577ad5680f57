"""loguru configuration for the command-line entry point."""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def configure_logging(level: str = "WARNING", sink: TextIO | None = None) -> int:
    """Replace loguru's default handler with a single stderr sink.

    Returns the handler id so callers (tests mostly) can remove it again.
    """
    logger.remove()
    return logger.add(
        sink or sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )
