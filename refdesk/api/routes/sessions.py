"""Operator routes for dispute sessions.

Every route requires the X-Operator-Id header of a user holding an
operator role. Domain errors are returned as RFC 7807 problem bodies:
- 404: Session not found
- 409: Session not open
- 422: Parties, issue or prerequisites missing
- 403: Caller is not an operator
- 502: The chat platform failed the call
"""

from fastapi import APIRouter, Depends, Request

from refdesk.api.dependencies.relay import (
    get_session_lifecycle_service,
    require_operator,
)
from refdesk.api.errors import to_http_exception
from refdesk.api.models.sessions import (
    CloseResponse,
    DecisionOptionsModel,
    DecisionPostResponse,
    MessagePartiesRequest,
    PartyMessageResponse,
    PostDecisionRequest,
    RosterSyncResponse,
    SessionResponse,
    SetAffiliationsRequest,
    SetIssueRequest,
    SetPartiesRequest,
)
from refdesk.application.services import SessionLifecycleService
from refdesk.domain.exceptions import RefDeskError

router = APIRouter(
    prefix="/v1/sessions",
    tags=["sessions"],
    dependencies=[Depends(require_operator)],
)

_PROBLEM_RESPONSES: dict[int | str, dict[str, str]] = {
    403: {"description": "Caller is not an operator"},
    404: {"description": "Dispute session not found"},
    409: {"description": "Dispute session is not open"},
    502: {"description": "Chat platform call failed"},
}


@router.get("/{session_id}", response_model=SessionResponse, responses=_PROBLEM_RESPONSES)
async def get_session(
    session_id: str,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> SessionResponse:
    """Show an open session with its preview text."""
    try:
        session = await service.get_session(session_id)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return SessionResponse.from_domain(session)


@router.put(
    "/{session_id}/parties", response_model=SessionResponse, responses=_PROBLEM_RESPONSES
)
async def set_parties(
    session_id: str,
    request_data: SetPartiesRequest,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> SessionResponse:
    """Assign the disputer and opponent.

    Both parties become routable for private messages and are removed from
    the session if they were members.
    """
    try:
        session = await service.set_parties(
            session_id, request_data.party_a_id, request_data.party_b_id
        )
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return SessionResponse.from_domain(session)


@router.put(
    "/{session_id}/issue", response_model=SessionResponse, responses=_PROBLEM_RESPONSES
)
async def set_issue(
    session_id: str,
    request_data: SetIssueRequest,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> SessionResponse:
    try:
        session = await service.set_issue(session_id, request_data.issue)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return SessionResponse.from_domain(session)


@router.put(
    "/{session_id}/affiliations",
    response_model=SessionResponse,
    responses=_PROBLEM_RESPONSES,
)
async def set_affiliations(
    session_id: str,
    request_data: SetAffiliationsRequest,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> SessionResponse:
    try:
        session = await service.set_affiliations(
            session_id,
            party_a_affiliation=request_data.party_a_affiliation,
            party_b_affiliation=request_data.party_b_affiliation,
            resync_conflicts=request_data.resync_conflicts,
        )
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return SessionResponse.from_domain(session)


@router.put(
    "/{session_id}/decision-options",
    response_model=SessionResponse,
    responses=_PROBLEM_RESPONSES,
)
async def set_decision_options(
    session_id: str,
    request_data: DecisionOptionsModel,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> SessionResponse:
    """Merge decision options. Omitted fields keep their stored values."""
    try:
        session = await service.set_decision_options(session_id, request_data.to_domain())
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return SessionResponse.from_domain(session)


@router.post(
    "/{session_id}/decision",
    response_model=DecisionPostResponse,
    responses={
        **_PROBLEM_RESPONSES,
        422: {"description": "Parties or issue not set"},
    },
)
async def post_decision(
    session_id: str,
    request_data: PostDecisionRequest,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> DecisionPostResponse:
    """Render and post the ruling.

    Nothing is posted when the disputer, opponent or issue is unset.
    """
    overrides = request_data.options.to_domain() if request_data.options else None
    try:
        result = await service.post_decision(
            session_id,
            request_data.outcome,
            overrides=overrides,
            channel_id=request_data.channel_id,
        )
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return DecisionPostResponse.from_result(result)


@router.post(
    "/{session_id}/close", response_model=CloseResponse, responses=_PROBLEM_RESPONSES
)
async def close_session(
    session_id: str,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> CloseResponse:
    """Close a session.

    Closing an already closed session returns 409.
    """
    try:
        result = await service.close(session_id)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return CloseResponse.from_result(result)


@router.post(
    "/{session_id}/conflict-removal",
    response_model=RosterSyncResponse,
    responses=_PROBLEM_RESPONSES,
)
async def remove_conflicts(
    session_id: str,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> RosterSyncResponse:
    try:
        result = await service.remove_conflicts(session_id)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return RosterSyncResponse.from_result(result)


@router.post(
    "/{session_id}/retag", response_model=RosterSyncResponse, responses=_PROBLEM_RESPONSES
)
async def retag(
    session_id: str,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> RosterSyncResponse:
    """Remove conflicts, add the retag role's holders and ping them."""
    try:
        result = await service.retag(session_id)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return RosterSyncResponse.from_result(result)


@router.post(
    "/{session_id}/messages",
    response_model=PartyMessageResponse,
    responses={
        **_PROBLEM_RESPONSES,
        422: {"description": "Targeted parties not set"},
    },
)
async def message_parties(
    session_id: str,
    request_data: MessagePartiesRequest,
    request: Request,
    service: SessionLifecycleService = Depends(get_session_lifecycle_service),
) -> PartyMessageResponse:
    """DM one or both parties and echo the delivery summary in the session."""
    try:
        result = await service.message_parties(
            session_id, request_data.target, request_data.text
        )
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return PartyMessageResponse.from_result(result)
