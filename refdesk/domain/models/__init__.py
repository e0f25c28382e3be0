"""Domain models for refdesk."""

from refdesk.domain.models.dispute_session import (
    DecisionOptions,
    DisputeSession,
    IssueCategory,
    OriginReference,
    PartySide,
    PartyTarget,
    SessionState,
    TeamRule,
)
from refdesk.domain.models.platform import (
    InboundMessage,
    PlatformMember,
    PlatformRole,
    PlatformUser,
    RouteChoiceOption,
    TextChannel,
)

__all__: list[str] = [
    "DecisionOptions",
    "DisputeSession",
    "InboundMessage",
    "IssueCategory",
    "OriginReference",
    "PartySide",
    "PartyTarget",
    "PlatformMember",
    "PlatformRole",
    "PlatformUser",
    "RouteChoiceOption",
    "SessionState",
    "TeamRule",
    "TextChannel",
]
