"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- ChatPlatformProtocol: Remote chat platform operations
- DisambiguationPromptProtocol: Ask a user which session a DM is about
- SessionStoreProtocol: Authoritative session table and routing indices
"""

from refdesk.application.ports.chat_platform import (
    ChatPlatformProtocol,
    DisambiguationPromptProtocol,
)
from refdesk.application.ports.results import (
    ChoiceAction,
    ChoiceResult,
    CloseResult,
    DecisionPostResult,
    IntakeAction,
    IntakeResult,
    PartyMessageResult,
    RosterOperation,
    RosterSyncResult,
    RouteAction,
    RouteResult,
)
from refdesk.application.ports.session_store import RouteLookup, SessionStoreProtocol

__all__: list[str] = [
    "ChatPlatformProtocol",
    "ChoiceAction",
    "ChoiceResult",
    "CloseResult",
    "DecisionPostResult",
    "DisambiguationPromptProtocol",
    "IntakeAction",
    "IntakeResult",
    "PartyMessageResult",
    "RosterOperation",
    "RosterSyncResult",
    "RouteAction",
    "RouteLookup",
    "RouteResult",
    "SessionStoreProtocol",
]
