"""Bounded and best-effort platform calls.

Every external call is a potential long-latency suspension point. This
module bounds each one with a timeout and gives services two ways to run it:
- call(): failures propagate as PlatformCallError (creation-critical steps)
- best_effort(): failures are logged and reported as False (cleanup,
  notifications, reactions)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

from structlog import get_logger

from refdesk.domain.errors import PlatformCallError, PlatformTimeoutError

logger = get_logger(__name__)

T = TypeVar("T")


class PlatformCaller:
    """Runs platform calls with a time bound and uniform error handling.

    Attributes:
        timeout_seconds: Bound applied to every call.
    """

    def __init__(self, timeout_seconds: float) -> None:
        """Initialize the caller.

        Args:
            timeout_seconds: Bound applied to every call.
        """
        self.timeout_seconds = timeout_seconds

    async def call(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Run a platform call, raising on failure.

        Args:
            operation: Name of the operation, for errors and logs.
            awaitable: The platform call.

        Returns:
            The call's result.

        Raises:
            PlatformTimeoutError: If the call exceeds the time bound.
            PlatformCallError: If the call failed for any other reason.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except TimeoutError as e:
            raise PlatformTimeoutError(operation, self.timeout_seconds) from e
        except PlatformCallError:
            raise
        except Exception as e:
            raise PlatformCallError(operation, str(e) or type(e).__name__) from e

    async def attempt(
        self, operation: str, awaitable: Awaitable[T], **context: Any
    ) -> T | None:
        """Run a platform call, returning None on failure.

        Failures are logged with the given context and never raised.
        """
        try:
            return await self.call(operation, awaitable)
        except PlatformCallError as e:
            logger.warning(
                "best_effort_step_failed",
                operation=operation,
                reason=e.reason,
                **context,
            )
            return None

    async def best_effort(
        self, operation: str, awaitable: Awaitable[Any], **context: Any
    ) -> bool:
        """Run a platform call whose failure must not abort the caller.

        Returns:
            True if the call succeeded, False if it failed or timed out.
        """
        try:
            await self.call(operation, awaitable)
            return True
        except PlatformCallError as e:
            logger.warning(
                "best_effort_step_failed",
                operation=operation,
                reason=e.reason,
                **context,
            )
            return False
