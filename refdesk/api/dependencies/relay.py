"""Relay API dependencies.

Route handlers receive the wired services through these getters. The
services themselves are built once per process by refdesk.bootstrap; tests
swap the whole set with set_container().
"""

from fastapi import Depends, Header, HTTPException, Request

from refdesk.api.errors import problem_detail, to_http_exception
from refdesk.application.ports.session_store import SessionStoreProtocol
from refdesk.application.services import (
    EventDispatcher,
    OperatorAuthorizer,
    RoutingResolver,
    SessionLifecycleService,
)
from refdesk.bootstrap.container import get_container
from refdesk.domain.exceptions import RefDeskError

OPERATOR_HEADER = "X-Operator-Id"


def get_event_dispatcher() -> EventDispatcher:
    return get_container().dispatcher


def get_routing_resolver() -> RoutingResolver:
    return get_container().router


def get_session_lifecycle_service() -> SessionLifecycleService:
    return get_container().lifecycle


def get_operator_authorizer() -> OperatorAuthorizer:
    return get_container().authorizer


def get_session_store() -> SessionStoreProtocol:
    return get_container().store


async def require_operator(
    request: Request,
    x_operator_id: str | None = Header(default=None, alias=OPERATOR_HEADER),
    authorizer: OperatorAuthorizer = Depends(get_operator_authorizer),
) -> str:
    """FastAPI dependency that admits only operators.

    Args:
        request: Request being served.
        x_operator_id: User id of the operator issuing the command.
        authorizer: Injected operator role check.

    Returns:
        The operator's user id.

    Raises:
        HTTPException 401: The X-Operator-Id header is missing.
        HTTPException 403: The user holds no operator role.
        HTTPException 502: The role lookup failed.
    """
    if not x_operator_id:
        raise HTTPException(
            status_code=401,
            detail=problem_detail(
                401,
                "operator:missing-identity",
                "Operator Identity Missing",
                f"The {OPERATOR_HEADER} header is required",
                request,
            ),
        )
    try:
        await authorizer.require_operator(x_operator_id)
    except RefDeskError as e:
        raise to_http_exception(e, request) from None
    return x_operator_id
