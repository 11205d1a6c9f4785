"""structlog setup shared by the CLI and library entry points."""

from __future__ import annotations

import logging
import sys

import structlog

from .config import Settings, get_settings

# Chatty third-party loggers that only surface warnings unless DEBUG is asked for.
_TRANSPORT_LOGGERS = ("httpx", "httpcore", "mcp.client")


def configure_logging(
    level: str | None = None,
    *,
    settings: Settings | None = None,
) -> None:
    """Route structlog events to stderr as JSON lines at the requested level.

    stdout stays free for command output such as summaries and field listings.
    """
    level_name = (level or (settings or get_settings()).log_level).upper()
    threshold = logging.getLevelName(level_name)
    if not isinstance(threshold, int):
        threshold = logging.INFO

    logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(threshold)
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(threshold if threshold <= logging.DEBUG else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
