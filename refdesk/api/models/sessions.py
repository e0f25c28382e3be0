"""Dispute session API request/response models.

Pydantic models for operator edits and commands against one session.
Enum fields accept their string values, e.g. "Lag" for an issue or
"party_a" for a side.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from refdesk.application.ports.results import (
    CloseResult,
    DecisionPostResult,
    PartyMessageResult,
    RosterSyncResult,
)
from refdesk.domain.models.dispute_session import (
    DecisionOptions,
    DisputeSession,
    IssueCategory,
    PartySide,
    PartyTarget,
    TeamRule,
)
from refdesk.domain.services.decision_text import DecisionOutcome
from refdesk.domain.services.session_presentation import session_preview


class OriginResponse(BaseModel):
    """The triggering artifact of a session."""

    guild_id: str
    channel_id: str
    message_id: str
    url: str | None = None


class DecisionOptionsModel(BaseModel):
    """Outcome-specific decision fields. Omitted fields are left unchanged."""

    favour: PartySide | None = Field(default=None, description="Side awarded points")
    penalty_against: PartySide | None = Field(default=None, description="Side penalised")
    device_party: PartySide | None = Field(
        default=None, description="Side that had the device issue"
    )
    team_rule: TeamRule | None = Field(default=None, description="Rematch team rule")
    schedule_window: str | None = Field(default=None, description="e.g. '24 hours'")
    item_name: str | None = Field(default=None, description="Item involved")
    old_value: str | None = Field(default=None, description="Registered value")
    new_value: str | None = Field(default=None, description="Value actually used")

    def to_domain(self) -> DecisionOptions:
        return DecisionOptions(
            favour=self.favour,
            penalty_against=self.penalty_against,
            device_party=self.device_party,
            team_rule=self.team_rule,
            schedule_window=self.schedule_window,
            item_name=self.item_name,
            old_value=self.old_value,
            new_value=self.new_value,
        )

    @classmethod
    def from_domain(cls, options: DecisionOptions) -> DecisionOptionsModel:
        return cls(
            favour=options.favour,
            penalty_against=options.penalty_against,
            device_party=options.device_party,
            team_rule=options.team_rule,
            schedule_window=options.schedule_window,
            item_name=options.item_name,
            old_value=options.old_value,
            new_value=options.new_value,
        )


class SessionResponse(BaseModel):
    """Operator view of one dispute session.

    Attributes:
        session_id: Private session handle.
        raiser_id: User who raised the dispute.
        origin: The triggering artifact.
        preview: Human-readable summary used in command replies.
    """

    session_id: str
    raiser_id: str
    origin: OriginResponse
    party_a_id: str | None = None
    party_b_id: str | None = None
    issue: IssueCategory | None = None
    party_a_affiliation: str | None = None
    party_b_affiliation: str | None = None
    decision_options: DecisionOptionsModel
    state: str
    title: str | None = None
    created_at: datetime
    preview: str

    @classmethod
    def from_domain(cls, session: DisputeSession) -> SessionResponse:
        return cls(
            session_id=session.session_id,
            raiser_id=session.raiser_id,
            origin=OriginResponse(
                guild_id=session.origin.guild_id,
                channel_id=session.origin.channel_id,
                message_id=session.origin.message_id,
                url=session.origin.url,
            ),
            party_a_id=session.party_a_id,
            party_b_id=session.party_b_id,
            issue=session.issue,
            party_a_affiliation=session.party_a_affiliation,
            party_b_affiliation=session.party_b_affiliation,
            decision_options=DecisionOptionsModel.from_domain(session.decision_options),
            state=session.state.value,
            title=session.title,
            created_at=session.created_at,
            preview=session_preview(session),
        )


class SetPartiesRequest(BaseModel):
    """Assign the disputer and the opponent."""

    party_a_id: str = Field(..., min_length=1, description="Disputer's user id")
    party_b_id: str = Field(..., min_length=1, description="Opponent's user id")


class SetIssueRequest(BaseModel):
    """Set the issue category."""

    issue: IssueCategory


class SetAffiliationsRequest(BaseModel):
    """Correct the affiliation labels. Omitted sides keep their label."""

    party_a_affiliation: str | None = None
    party_b_affiliation: str | None = None
    resync_conflicts: bool = Field(
        default=False, description="Re-run conflict removal with the new labels"
    )


class PostDecisionRequest(BaseModel):
    """Render and post a ruling."""

    outcome: DecisionOutcome
    options: DecisionOptionsModel | None = Field(
        default=None, description="Options merged into the session before rendering"
    )
    channel_id: str | None = Field(
        default=None, description="Post here instead of the detected results channel"
    )


class DecisionPostResponse(BaseModel):
    session_id: str
    channel_id: str
    posted_in_session: bool
    text: str

    @classmethod
    def from_result(cls, result: DecisionPostResult) -> DecisionPostResponse:
        return cls(
            session_id=result.session_id,
            channel_id=result.channel_id,
            posted_in_session=result.posted_in_session,
            text=result.text,
        )


class MessagePartiesRequest(BaseModel):
    """Send a private message to one or both parties."""

    target: PartyTarget
    text: str = Field(..., min_length=1, max_length=2000)


class PartyMessageResponse(BaseModel):
    session_id: str
    delivered: list[str]
    blocked: list[str]

    @classmethod
    def from_result(cls, result: PartyMessageResult) -> PartyMessageResponse:
        return cls(
            session_id=result.session_id,
            delivered=list(result.delivered),
            blocked=list(result.blocked),
        )


class RosterSyncResponse(BaseModel):
    """Membership delta applied by a roster command."""

    session_id: str
    operation: str
    added: list[str]
    removed: list[str]
    failed: list[str]

    @classmethod
    def from_result(cls, result: RosterSyncResult) -> RosterSyncResponse:
        return cls(
            session_id=result.session_id,
            operation=result.operation.value,
            added=list(result.added),
            removed=list(result.removed),
            failed=list(result.failed),
        )


class CloseResponse(BaseModel):
    """Which close steps succeeded.

    Routing removal and the store purge always happen; the flags record the
    best-effort steps.
    """

    session_id: str
    unrouted_user_ids: list[str]
    artifact_deleted: bool
    raiser_notified: bool
    closer_acknowledged: bool
    archived: bool
    locked: bool

    @classmethod
    def from_result(cls, result: CloseResult) -> CloseResponse:
        return cls(**result.to_dict())
