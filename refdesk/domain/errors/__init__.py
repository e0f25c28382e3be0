"""Domain errors for refdesk.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from RefDeskError.
"""

from refdesk.domain.errors.platform import (
    PlatformCallError,
    PlatformNotFoundError,
    PlatformTimeoutError,
)
from refdesk.domain.errors.session import (
    MissingDecisionPrerequisitesError,
    MissingOpposingAffiliationError,
    MissingPartiesError,
    OperatorNotAuthorizedError,
    RoutingIndexDefectError,
    SessionCreationError,
    SessionError,
    SessionNotFoundError,
    SessionNotOpenError,
)

__all__: list[str] = [
    "MissingDecisionPrerequisitesError",
    "MissingOpposingAffiliationError",
    "MissingPartiesError",
    "OperatorNotAuthorizedError",
    "PlatformCallError",
    "PlatformNotFoundError",
    "PlatformTimeoutError",
    "RoutingIndexDefectError",
    "SessionCreationError",
    "SessionError",
    "SessionNotFoundError",
    "SessionNotOpenError",
]
