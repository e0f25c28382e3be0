"""User routing view models."""

from pydantic import BaseModel


class RoutingViewResponse(BaseModel):
    """Where a user's private messages currently go.

    Attributes:
        user_id: The user.
        open_session_ids: Open sessions the user is routed to, oldest first.
        selected_session_id: Explicit selection, if any.
        target_session_id: Session the next message would be forwarded to;
            None when there is no session or a choice is needed.
    """

    user_id: str
    open_session_ids: list[str]
    selected_session_id: str | None = None
    target_session_id: str | None = None
