"""structlog configuration.

Called once at process start. Components never configure logging
themselves; they receive a bound logger (or bind the shared one) at
construction time.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(
    level: str = "info",
    *,
    json_logs: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name (debug/info/warning/error)
        json_logs: Render JSON lines instead of the console format
        stream: Output stream; defaults to stderr because stdout carries
            the MCP protocol in stdio mode
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get(level.lower(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )
