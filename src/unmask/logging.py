"""structlog setup for the CLI and long-running workers."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: str = "INFO",
    *,
    json: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Route structlog events to ``stream`` (stderr by default).

    Events carry an ISO timestamp, the level and any context bound with
    ``structlog.contextvars``. ``json=False`` switches to the console renderer.
    """
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        threshold = logging.INFO
    stream = stream or sys.stderr

    logging.basicConfig(level=threshold, format="%(message)s", stream=stream)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


__all__ = ["configure_logging"]
