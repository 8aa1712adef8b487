"""structlog setup for the command line tool."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(level: str = "info", stream: TextIO | None = None) -> None:
    """Send log events at or above `level` to stderr as plain console lines."""
    levels = logging.getLevelNamesMapping()
    try:
        min_level = levels[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
