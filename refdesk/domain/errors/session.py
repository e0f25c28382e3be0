"""Dispute session domain errors.

Validation failures are reported back to the invoking user or operator and
never mutate state. Each error carries the fields needed to build a plain,
specific reply.
"""

from __future__ import annotations

from collections.abc import Sequence

from refdesk.domain.exceptions import RefDeskError


class SessionError(RefDeskError):
    """Base error for dispute session operations."""

    pass


class SessionNotOpenError(SessionError):
    """Raised when an operation requires an open session.

    Closing an already closed session is an error, never a silent no-op.

    Attributes:
        session_id: The session that is not open.
    """

    def __init__(self, session_id: str, message: str | None = None) -> None:
        """Initialize the error.

        Args:
            session_id: The session that is not open.
            message: Optional override for the error message.
        """
        self.session_id = session_id
        super().__init__(message or f"Dispute session {session_id} is not open")


class SessionNotFoundError(SessionNotOpenError):
    """Raised when a session id is unknown to the session store.

    Subclasses SessionNotOpenError: an unknown session is, in particular,
    not an open one.
    """

    def __init__(self, session_id: str) -> None:
        super().__init__(
            session_id, f"No dispute session is registered for {session_id}"
        )


class MissingOpposingAffiliationError(SessionError):
    """Raised when a trigger does not identify the opposing affiliation.

    Creation is aborted before any external call is made.
    """

    def __init__(self, raiser_id: str) -> None:
        self.raiser_id = raiser_id
        super().__init__(
            "I could not detect an opponent affiliation. Please re-raise the "
            "issue and tag the opponent's affiliation role (name includes [XX])."
        )


class MissingDecisionPrerequisitesError(SessionError):
    """Raised when a decision is requested before parties and issue are set.

    Attributes:
        session_id: The session the decision was requested for.
        missing_fields: Names of the absent prerequisite fields.
    """

    def __init__(self, session_id: str, missing_fields: Sequence[str]) -> None:
        """Initialize the error.

        Args:
            session_id: The session the decision was requested for.
            missing_fields: Names of the absent prerequisite fields.
        """
        self.session_id = session_id
        self.missing_fields = tuple(missing_fields)
        super().__init__(
            "Cannot post decision: missing "
            + ", ".join(self.missing_fields)
            + ". Set parties and issue first."
        )


class MissingPartiesError(SessionError):
    """Raised when a party-targeted command runs before parties are assigned."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Disputer or Opponent not set yet. Set parties first.")


class SessionCreationError(SessionError):
    """Raised when the external private session could not be created.

    No Origin Reference and no routing entry are committed when this is
    raised.
    """

    def __init__(self, origin_key: str, reason: str) -> None:
        self.origin_key = origin_key
        self.reason = reason
        super().__init__(
            f"Could not open a dispute session for {origin_key}: {reason}"
        )


class OperatorNotAuthorizedError(SessionError):
    """Raised when a command caller does not hold an operator role."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} is not allowed to manage disputes")


class RoutingIndexDefectError(SessionError):
    """Internal defect: an index referenced a session absent from the store.

    Never surfaced to users. The store logs it and removes the entry.
    """

    def __init__(self, user_id: str, session_id: str) -> None:
        self.user_id = user_id
        self.session_id = session_id
        super().__init__(
            f"Routing index for user {user_id} referenced unknown session "
            f"{session_id}"
        )
