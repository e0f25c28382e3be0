"""Trigger source routes.

A gateway relay posts every message the bot can see here, and every
answer to a disambiguation prompt. Message events are dispatched as
independent tasks and acknowledged immediately with 202; pass wait=true to
receive the handler's outcome instead.
"""

from fastapi import APIRouter, Depends, Query

from refdesk.api.dependencies.relay import get_event_dispatcher, get_routing_resolver
from refdesk.api.models.events import (
    InboundMessageRequest,
    MessageEventResponse,
    RouteChoiceRequest,
    RouteChoiceResponse,
)
from refdesk.application.services import EventDispatcher, RoutingResolver

router = APIRouter(prefix="/v1/events", tags=["events"])


@router.post(
    "/messages",
    response_model=MessageEventResponse,
    status_code=202,
    summary="Deliver a message event",
)
async def receive_message(
    request_data: InboundMessageRequest,
    wait: bool = Query(default=False, description="Wait for the handler's outcome"),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> MessageEventResponse:
    """Dispatch a community or private message.

    Community messages go to intake, private messages to routing. Handler
    failures are logged by the dispatcher and never fail the request.

    Args:
        request_data: The normalized message event.
        wait: Await the handler and report its outcome.
        dispatcher: Injected event dispatcher.

    Returns:
        MessageEventResponse, with outcome and session_id when waited on.
    """
    task = dispatcher.dispatch_message(request_data.to_domain())
    if not wait:
        return MessageEventResponse(message_id=request_data.message_id)

    result = await task
    if result is None:
        return MessageEventResponse(message_id=request_data.message_id, outcome="error")
    return MessageEventResponse(
        message_id=request_data.message_id,
        outcome=result.action.value,
        session_id=result.session_id,
    )


@router.post(
    "/route-choices",
    response_model=RouteChoiceResponse,
    summary="Deliver a disambiguation answer",
)
async def receive_route_choice(
    request_data: RouteChoiceRequest,
    resolver: RoutingResolver = Depends(get_routing_resolver),
) -> RouteChoiceResponse:
    """Commit a user's answer to a "which dispute?" prompt.

    The answer is rejected when the chosen session is no longer in the
    user's routing set, e.g. because it closed while the prompt was open.
    """
    result = await resolver.resolve_choice(request_data.user_id, request_data.session_id)
    return RouteChoiceResponse(
        action=result.action.value,
        user_id=result.user_id,
        session_id=result.session_id,
        message=result.message,
    )
