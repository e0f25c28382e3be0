"""Dispute session domain models.

This module defines the domain models for one dispute under adjudication:
- SessionState: Open/Closed lifecycle (Closed is terminal)
- IssueCategory: The issue an operator files the dispute under
- OriginReference: Pointer to the triggering artifact
- DecisionOptions: Outcome-specific fields set incrementally by operators
- DisputeSession: The session aggregate

DisputeSession is immutable. Every edit returns a new instance and the
session store swaps it in atomically, so concurrent readers always see a
consistent snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Lifecycle states for a dispute session.

    State Transition Matrix:
    - OPEN -> CLOSED
    - CLOSED -> (terminal)
    """

    OPEN = "open"
    CLOSED = "closed"


class IssueCategory(str, Enum):
    """Issue categories a dispute can be filed under."""

    LAG = "Lag"
    COMMUNICATION = "Communication"
    DEVICE_ISSUE = "Device Issue"
    NO_SHOW = "No Show"
    WRONG_POKEMON_OR_MOVESET = "Wrong Pokemon or Moveset"


class PartySide(str, Enum):
    """Which party (or party's affiliation) an option refers to."""

    PARTY_A = "party_a"
    PARTY_B = "party_b"


class PartyTarget(str, Enum):
    """Who an operator message is addressed to."""

    PARTY_A = "party_a"
    PARTY_B = "party_b"
    BOTH = "both"


class TeamRule(str, Enum):
    """Team rule applied to rematch decisions."""

    SAME_TEAMS_SAME_LEAD = "same_teams_same_lead"
    SAME_LEAD_FLEX_BACK = "same_lead_flex_back"
    NEW_TEAMS = "new_teams"


@dataclass(frozen=True)
class OriginReference:
    """The triggering artifact a session was created from.

    Bound 1:1 to a session for the session's lifetime. Used to locate and
    delete the artifact when the session closes.

    Attributes:
        guild_id: Community the trigger came from.
        channel_id: Channel (or thread) holding the trigger message.
        message_id: The trigger message.
        url: Jump link to the trigger, when known.
    """

    guild_id: str
    channel_id: str
    message_id: str
    url: str | None = None


@dataclass(frozen=True)
class DecisionOptions:
    """Outcome-specific fields set incrementally by operators.

    Attributes:
        favour: Affiliation awarded points on communication rulings.
        penalty_against: Affiliation penalised on wrong item rulings.
        device_party: Party that had the device issue.
        team_rule: Team rule for rematches.
        schedule_window: Free-text scheduling window, e.g. "24 hours".
        item_name: Item involved in a wrong item/moveset ruling.
        old_value: Registered value before an illegal change.
        new_value: Value actually used.
    """

    favour: PartySide | None = None
    penalty_against: PartySide | None = None
    device_party: PartySide | None = None
    team_rule: TeamRule | None = None
    schedule_window: str | None = None
    item_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None

    def merged_with(self, other: DecisionOptions) -> DecisionOptions:
        """Overlay the set fields of another options value onto this one.

        A None in other never clears a value already set here.

        Args:
            other: Options whose non-None fields take precedence.

        Returns:
            New DecisionOptions with both sets of values merged.
        """
        updates: dict[str, Any] = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for logging and API responses."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result


@dataclass(frozen=True)
class DisputeSession:
    """One dispute under adjudication.

    Attributes:
        session_id: Handle of the private discussion session, assigned by
            the platform at creation. Immutable.
        raiser_id: User who triggered creation. Immutable.
        origin: Reference to the triggering artifact.
        origin_key: Logical key used to deduplicate creation.
        party_a_id: Disputer, once assigned by an operator.
        party_b_id: Opponent, once assigned by an operator.
        issue: Issue category, once set.
        party_a_affiliation: Disputer's affiliation label.
        party_b_affiliation: Opponent's affiliation label.
        decision_options: Outcome-specific fields.
        state: OPEN or CLOSED.
        title: Last display name applied to the session.
        created_at: When the session was registered.
    """

    session_id: str
    raiser_id: str
    origin: OriginReference
    origin_key: str
    party_a_id: str | None = None
    party_b_id: str | None = None
    issue: IssueCategory | None = None
    party_a_affiliation: str | None = None
    party_b_affiliation: str | None = None
    decision_options: DecisionOptions = field(default_factory=DecisionOptions)
    state: SessionState = SessionState.OPEN
    title: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def origin_guild_id(self) -> str:
        """Community the dispute was raised in."""
        return self.origin.guild_id

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    @property
    def party_ids(self) -> tuple[str, ...]:
        """Assigned party ids, in A/B order, skipping unassigned ones."""
        return tuple(p for p in (self.party_a_id, self.party_b_id) if p)

    @property
    def involved_user_ids(self) -> frozenset[str]:
        """Users who must never sit in the adjudication-only space.

        The raiser counts as involved even before an operator assigns the
        parties.
        """
        return frozenset((self.raiser_id, *self.party_ids))

    @property
    def affiliation_labels(self) -> tuple[str, ...]:
        """Known party affiliation labels, used for conflict removal."""
        return tuple(
            label
            for label in (self.party_a_affiliation, self.party_b_affiliation)
            if label
        )

    def missing_decision_prerequisites(self) -> list[str]:
        """List the fields that must be set before a decision is recorded.

        Returns:
            Human-readable names of missing fields, empty when ready.
        """
        missing: list[str] = []
        if not self.party_a_id:
            missing.append("Disputer")
        if not self.party_b_id:
            missing.append("Opponent")
        if self.issue is None:
            missing.append("Issue")
        return missing

    def derive_title(self, party_a_name: str, party_b_name: str) -> str | None:
        """Compute the display name from issue and party names.

        Returns None until both parties and the issue are known.
        """
        if self.issue is None or not (self.party_a_id and self.party_b_id):
            return None
        return f"{self.issue.value} - {party_a_name} vs {party_b_name}"

    def route_label(self) -> str:
        """Label shown when a user must pick which dispute a DM is about."""
        issue = self.issue.value if self.issue else "Dispute"
        side_a = self.party_a_affiliation or ("Disputer" if self.party_a_id else "Disputer?")
        side_b = self.party_b_affiliation or ("Opponent" if self.party_b_id else "Opponent?")
        return f"{issue} - {side_a} vs {side_b}"[:100]

    def affiliation_for(self, side: PartySide | None) -> str | None:
        if side == PartySide.PARTY_A:
            return self.party_a_affiliation
        if side == PartySide.PARTY_B:
            return self.party_b_affiliation
        return None

    def party_for(self, side: PartySide | None) -> str | None:
        if side == PartySide.PARTY_A:
            return self.party_a_id
        if side == PartySide.PARTY_B:
            return self.party_b_id
        return None

    def with_parties(self, party_a_id: str, party_b_id: str) -> DisputeSession:
        """Create a new session with both parties assigned.

        Raises:
            ValueError: If the session is closed.
        """
        self._require_open("assign parties")
        return replace(self, party_a_id=party_a_id, party_b_id=party_b_id)

    def with_issue(self, issue: IssueCategory) -> DisputeSession:
        self._require_open("set issue")
        return replace(self, issue=issue)

    def with_affiliations(
        self,
        party_a_affiliation: str | None = None,
        party_b_affiliation: str | None = None,
    ) -> DisputeSession:
        """Create a new session with updated affiliation labels.

        A None argument keeps the current label for that side.
        """
        self._require_open("set affiliation")
        return replace(
            self,
            party_a_affiliation=party_a_affiliation or self.party_a_affiliation,
            party_b_affiliation=party_b_affiliation or self.party_b_affiliation,
        )

    def with_decision_options(self, options: DecisionOptions) -> DisputeSession:
        self._require_open("set decision options")
        return replace(self, decision_options=self.decision_options.merged_with(options))

    def with_title(self, title: str) -> DisputeSession:
        return replace(self, title=title)

    def with_closed(self) -> DisputeSession:
        """Create a new session marked as closed.

        Raises:
            ValueError: If already closed.
        """
        self._require_open("close")
        return replace(self, state=SessionState.CLOSED)

    def _require_open(self, action: str) -> None:
        if not self.is_open:
            raise ValueError(f"Cannot {action}: session {self.session_id} is closed")

    def to_dict(self) -> dict[str, Any]:
        """Convert session to dict for logging and API responses."""
        return {
            "session_id": self.session_id,
            "raiser_id": self.raiser_id,
            "origin": {
                "guild_id": self.origin.guild_id,
                "channel_id": self.origin.channel_id,
                "message_id": self.origin.message_id,
                "url": self.origin.url,
            },
            "origin_key": self.origin_key,
            "party_a_id": self.party_a_id,
            "party_b_id": self.party_b_id,
            "issue": self.issue.value if self.issue else None,
            "party_a_affiliation": self.party_a_affiliation,
            "party_b_affiliation": self.party_b_affiliation,
            "decision_options": self.decision_options.to_dict(),
            "state": self.state.value,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
        }
