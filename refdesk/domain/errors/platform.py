"""Chat platform call errors.

Every external call can fail independently. Callers decide whether a failure
is swallowed (batch and best-effort steps) or surfaced (the whole requested
operation failed).
"""

from __future__ import annotations

from refdesk.domain.exceptions import RefDeskError


class PlatformCallError(RefDeskError):
    """Raised when the chat platform rejects or fails a call.

    Attributes:
        operation: Name of the platform operation, e.g. "add_member".
        reason: Short description of the failure.
    """

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize the error.

        Args:
            operation: Name of the platform operation.
            reason: Short description of the failure.
        """
        self.operation = operation
        self.reason = reason
        super().__init__(f"Platform call {operation} failed: {reason}")


class PlatformTimeoutError(PlatformCallError):
    """Raised when a platform call exceeds its time bound.

    A timeout is a recoverable failure, never a success.
    """

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(operation, f"timed out after {timeout_seconds:.1f}s")


class PlatformNotFoundError(PlatformCallError):
    """Raised when the platform reports the target object does not exist."""

    pass
