"""Health check response models."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Health status string (e.g., "healthy").
        open_sessions: Number of open dispute sessions.
        pending_events: Dispatched events still being handled.
    """

    status: str
    open_sessions: int = 0
    pending_events: int = 0
