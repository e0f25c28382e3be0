"""HTTP middleware for the refdesk API."""

from refdesk.api.middleware.logging_middleware import LoggingMiddleware

__all__: list[str] = ["LoggingMiddleware"]
