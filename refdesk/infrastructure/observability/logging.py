"""structlog setup for the relay.

``production`` renders one JSON object per line; any other environment
gets the colored console renderer. ``LOG_LEVEL`` picks the threshold.

A rendered production entry looks like::

    {"event": "session_created", "session_id": "...", "origin_key": "...",
     "level": "info", "timestamp": "...", "correlation_id": "..."}
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from refdesk.infrastructure.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level() -> int:
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def _renderer(environment: str) -> Processor:
    if environment == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def configure_structlog(environment: str = "production") -> None:
    """Configure structlog once at startup.

    Args:
        environment: ``production`` for JSON lines, anything else for console.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            cast(Processor, correlation_id_processor),
            structlog.processors.format_exc_info,
            _renderer(environment),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
