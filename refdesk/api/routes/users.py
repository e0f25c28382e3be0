"""User routing view routes."""

from fastapi import APIRouter, Depends

from refdesk.api.dependencies.relay import get_session_store, require_operator
from refdesk.api.models.users import RoutingViewResponse
from refdesk.application.ports.session_store import SessionStoreProtocol

router = APIRouter(
    prefix="/v1/users",
    tags=["users"],
    dependencies=[Depends(require_operator)],
)


@router.get("/{user_id}/routing", response_model=RoutingViewResponse)
async def get_routing(
    user_id: str,
    store: SessionStoreProtocol = Depends(get_session_store),
) -> RoutingViewResponse:
    """Show where a user's private messages are routed."""
    lookup = await store.lookup_route(user_id)
    selected = await store.selected_session(user_id)
    return RoutingViewResponse(
        user_id=user_id,
        open_session_ids=list(lookup.candidates),
        selected_session_id=selected,
        target_session_id=lookup.target,
    )
