"""Result types returned by the refdesk application services.

Every service call reports what actually happened so the caller (an HTTP
route or the event dispatcher) can reply with a specific message that
distinguishes "nothing happened" from "partially happened".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IntakeAction(str, Enum):
    """Outcome of handling a potential trigger message."""

    CREATED = "created"
    """A new session was created for the trigger."""

    REUSED = "reused"
    """Another trigger already created the session for this origin."""

    DUPLICATE_TRIGGER = "duplicate_trigger"
    """The trigger was already handled (re-delivery)."""

    IGNORED = "ignored"
    """The message does not qualify as a trigger."""

    REJECTED = "rejected"
    """The trigger lacked required information; nothing was created."""

    FAILED = "failed"
    """External creation failed; nothing was committed."""


@dataclass(frozen=True)
class IntakeResult:
    """Result of handling a potential trigger message."""

    action: IntakeAction
    session_id: str | None = None
    message: str = ""

    @property
    def has_session(self) -> bool:
        return self.action in (IntakeAction.CREATED, IntakeAction.REUSED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "session_id": self.session_id,
            "message": self.message,
        }


class RosterOperation(str, Enum):
    """Roster synchronizer operations."""

    ADD_ALL_ELIGIBLE = "add_all_eligible"
    ADD_BY_CAPABILITY = "add_by_capability"
    REMOVE_CONFLICTED = "remove_conflicted"
    PURGE_PARTIES = "purge_parties"


@dataclass(frozen=True)
class RosterSyncResult:
    """Membership delta applied by one roster operation.

    Attributes:
        session_id: Session the operation ran against.
        operation: Which roster operation ran.
        added: User ids successfully added.
        removed: User ids successfully removed.
        removed_names: Usernames of removed users, for summaries.
        failed: User ids whose add/remove the platform rejected.
    """

    session_id: str
    operation: RosterOperation
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    removed_names: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "operation": self.operation.value,
            "added": list(self.added),
            "removed": list(self.removed),
            "failed": list(self.failed),
        }


class RouteAction(str, Enum):
    """Outcome of routing a private message."""

    FORWARDED = "forwarded"
    NO_SESSION = "no_session"
    DISAMBIGUATION_REQUESTED = "disambiguation_requested"
    UNROUTABLE = "unroutable"


@dataclass(frozen=True)
class RouteResult:
    """Result of routing one private message."""

    action: RouteAction
    user_id: str
    session_id: str | None = None
    offered: tuple[str, ...] = ()

    @property
    def was_forwarded(self) -> bool:
        return self.action == RouteAction.FORWARDED


class ChoiceAction(str, Enum):
    """Outcome of a disambiguation answer."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NO_ANSWER = "no_answer"


@dataclass(frozen=True)
class ChoiceResult:
    """Result of committing a user's disambiguation choice."""

    action: ChoiceAction
    user_id: str
    session_id: str | None
    message: str


@dataclass(frozen=True)
class CloseResult:
    """What each best-effort close step achieved.

    Routing removal and store purge are mandatory and always happen when
    close returns; the flags below record the best-effort steps.
    """

    session_id: str
    unrouted_user_ids: tuple[str, ...] = ()
    artifact_deleted: bool = False
    raiser_notified: bool = False
    closer_acknowledged: bool = False
    archived: bool = False
    locked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "unrouted_user_ids": list(self.unrouted_user_ids),
            "artifact_deleted": self.artifact_deleted,
            "raiser_notified": self.raiser_notified,
            "closer_acknowledged": self.closer_acknowledged,
            "archived": self.archived,
            "locked": self.locked,
        }


@dataclass(frozen=True)
class DecisionPostResult:
    """Where a rendered decision was posted."""

    session_id: str
    channel_id: str
    posted_in_session: bool
    text: str


@dataclass(frozen=True)
class PartyMessageResult:
    """Delivery summary of an operator message to the parties."""

    session_id: str
    delivered: tuple[str, ...] = field(default_factory=tuple)
    blocked: tuple[str, ...] = field(default_factory=tuple)
