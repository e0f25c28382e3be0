"""RFC 7807 error responses for refdesk routes.

Maps the domain error taxonomy onto HTTP status codes:
- Unknown session: 404
- Session not open: 409
- Validation (missing parties, prerequisites, affiliation): 422
- Caller lacks an operator role: 403
- Platform failures: 502

SessionNotFoundError subclasses SessionNotOpenError, so the table is
checked in order and the first matching class wins.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from refdesk.domain.errors import (
    MissingDecisionPrerequisitesError,
    MissingOpposingAffiliationError,
    MissingPartiesError,
    OperatorNotAuthorizedError,
    PlatformCallError,
    SessionCreationError,
    SessionNotFoundError,
    SessionNotOpenError,
)
from refdesk.domain.exceptions import RefDeskError

ERROR_TYPE_PREFIX = "urn:refdesk"

_ERROR_TABLE: list[tuple[type[RefDeskError], int, str, str]] = [
    (SessionNotFoundError, 404, "session:not-found", "Dispute Session Not Found"),
    (SessionNotOpenError, 409, "session:not-open", "Dispute Session Not Open"),
    (
        MissingDecisionPrerequisitesError,
        422,
        "decision:missing-prerequisites",
        "Decision Prerequisites Missing",
    ),
    (MissingPartiesError, 422, "session:missing-parties", "Parties Not Set"),
    (
        MissingOpposingAffiliationError,
        422,
        "intake:missing-opposing-affiliation",
        "Opposing Affiliation Missing",
    ),
    (OperatorNotAuthorizedError, 403, "operator:not-authorized", "Operator Not Authorized"),
    (SessionCreationError, 502, "platform:session-creation-failed", "Session Creation Failed"),
    (PlatformCallError, 502, "platform:call-failed", "Platform Call Failed"),
]


def problem_detail(
    status: int, error_type: str, title: str, detail: str, request: Request
) -> dict[str, Any]:
    """Build an RFC 7807 problem body."""
    return {
        "type": f"{ERROR_TYPE_PREFIX}:{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": str(request.url),
    }


def to_http_exception(exc: RefDeskError, request: Request) -> HTTPException:
    """Convert a domain error into an HTTPException with a problem body.

    Args:
        exc: The domain error raised by a service.
        request: Request being served, used for the instance field.

    Returns:
        HTTPException ready to be raised by the route.
    """
    for error_class, status, error_type, title in _ERROR_TABLE:
        if isinstance(exc, error_class):
            break
    else:
        status, error_type, title = 500, "internal", "Internal Error"

    detail = problem_detail(status, error_type, title, str(exc), request)
    if isinstance(exc, SessionNotOpenError):
        detail["session_id"] = exc.session_id
    if isinstance(exc, MissingDecisionPrerequisitesError):
        detail["missing_fields"] = list(exc.missing_fields)
    if isinstance(exc, PlatformCallError):
        detail["operation"] = exc.operation
    return HTTPException(status_code=status, detail=detail)
