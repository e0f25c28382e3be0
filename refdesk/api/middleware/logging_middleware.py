"""Request logging with correlation ids.

Every request runs under one correlation id: the caller's
``X-Correlation-ID`` when present, otherwise a fresh one. The id and the
acting operator (``X-Operator-Id``) are bound into structlog's
contextvars, so service logs emitted while handling the request carry
them too. Event tasks dispatched from ``POST /v1/events/messages`` copy
this context when they are created.
"""

import time
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from refdesk.bootstrap.logging import generate_correlation_id, set_correlation_id

CORRELATION_HEADER = "X-Correlation-ID"
OPERATOR_HEADER = "X-Operator-Id"

# Polled by load balancers; not worth a log line each time.
QUIET_PATHS = frozenset({"/v1/health"})

logger = structlog.get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id per request and log its outcome."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        operator_id = request.headers.get(OPERATOR_HEADER)
        if operator_id:
            structlog.contextvars.bind_contextvars(operator_id=operator_id)

        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise

        if not quiet or response.status_code >= 400:
            logger.info(
                "request_handled",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
