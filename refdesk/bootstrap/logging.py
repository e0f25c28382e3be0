"""Bootstrap wiring for logging configuration and correlation ids."""

from __future__ import annotations

from refdesk.infrastructure.observability import configure_structlog as _configure_structlog
from refdesk.infrastructure.observability import (
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


def configure_structlog(environment: str) -> None:
    """Configure structlog for the given environment."""
    _configure_structlog(environment=environment)


__all__ = [
    "configure_structlog",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
