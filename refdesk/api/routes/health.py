"""Health check endpoint for the refdesk API."""

from fastapi import APIRouter, Depends

from refdesk.api.dependencies.relay import get_event_dispatcher, get_session_store
from refdesk.api.models.health import HealthResponse
from refdesk.application.ports.session_store import SessionStoreProtocol
from refdesk.application.services import EventDispatcher

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: SessionStoreProtocol = Depends(get_session_store),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> HealthResponse:
    """Return health status.

    Returns:
        Health status with 200 OK.
    """
    open_sessions = await store.list_open_sessions()
    return HealthResponse(
        status="healthy",
        open_sessions=len(open_sessions),
        pending_events=dispatcher.pending,
    )
