"""Request/Response models for the refdesk API."""

from refdesk.api.models.events import (
    InboundMessageRequest,
    MessageEventResponse,
    RoleModel,
    RouteChoiceRequest,
    RouteChoiceResponse,
)
from refdesk.api.models.health import HealthResponse
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
from refdesk.api.models.users import RoutingViewResponse

__all__: list[str] = [
    "CloseResponse",
    "DecisionOptionsModel",
    "DecisionPostResponse",
    "HealthResponse",
    "InboundMessageRequest",
    "MessageEventResponse",
    "MessagePartiesRequest",
    "PartyMessageResponse",
    "PostDecisionRequest",
    "RoleModel",
    "RosterSyncResponse",
    "RouteChoiceRequest",
    "RouteChoiceResponse",
    "RoutingViewResponse",
    "SessionResponse",
    "SetAffiliationsRequest",
    "SetIssueRequest",
    "SetPartiesRequest",
]
