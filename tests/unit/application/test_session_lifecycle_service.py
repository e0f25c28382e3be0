"""Unit tests for SessionLifecycleService.

Key Test Scenarios:
1. Party assignment indexes parties for routing and purges them
2. The session is renamed once both parties and the issue are known
3. Decisions require parties and issue; nothing is posted otherwise
4. Close runs every step in order and purges last
5. Closing twice is an error
"""

import asyncio

import pytest

from refdesk.application.services.session_lifecycle_service import (
    CLOSED_ACK_TEXT,
    RETAG_PING_TEXT,
    SessionLifecycleService,
    closing_notice,
)
from refdesk.bootstrap.container import RelayContainer
from refdesk.domain.errors import (
    MissingDecisionPrerequisitesError,
    MissingPartiesError,
    PlatformCallError,
    SessionNotFoundError,
    SessionNotOpenError,
)
from refdesk.domain.models.dispute_session import (
    DecisionOptions,
    IssueCategory,
    PartySide,
    PartyTarget,
    TeamRule,
)
from refdesk.domain.models.platform import TextChannel
from refdesk.domain.services.decision_text import DecisionOutcome
from refdesk.infrastructure.persistence import InMemorySessionStore
from refdesk.infrastructure.stubs import ChatPlatformStub
from tests.helpers import make_session


@pytest.fixture
def lifecycle(container: RelayContainer) -> SessionLifecycleService:
    return container.lifecycle


@pytest.fixture
async def session_id(platform: ChatPlatformStub, store: InMemorySessionStore) -> str:
    """An open session with alice and the opponent already in it."""
    sid = await platform.create_private_session("hub-channel", "Dispute - raiser")
    platform.sessions[sid].member_ids.update({"ref-1", "opp-1"})
    await store.register_session(make_session(sid))
    return sid


async def ready_for_decision(lifecycle: SessionLifecycleService, session_id: str) -> None:
    await lifecycle.set_parties(session_id, "raiser-1", "opp-1")
    await lifecycle.set_issue(session_id, IssueCategory.LAG)


class TestEdits:
    @pytest.mark.asyncio
    async def test_set_parties_indexes_and_purges(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        store: InMemorySessionStore,
        session_id: str,
    ) -> None:
        session = await lifecycle.set_parties(session_id, "raiser-1", "opp-1")

        assert session.party_a_id == "raiser-1"
        assert session.party_b_id == "opp-1"
        assert await store.open_sessions("opp-1") == frozenset({session_id})
        assert platform.sessions[session_id].member_ids == {"ref-1"}

    @pytest.mark.asyncio
    async def test_corrected_party_loses_routing(
        self,
        lifecycle: SessionLifecycleService,
        store: InMemorySessionStore,
        session_id: str,
    ) -> None:
        await lifecycle.set_parties(session_id, "raiser-1", "wrong-user")
        await lifecycle.set_parties(session_id, "raiser-1", "opp-1")

        assert await store.open_sessions("wrong-user") == frozenset()
        assert await store.open_sessions("opp-1") == frozenset({session_id})

    @pytest.mark.asyncio
    async def test_title_follows_issue_and_parties(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await lifecycle.set_parties(session_id, "raiser-1", "opp-1")
        assert platform.sessions[session_id].title == "Dispute - raiser"

        session = await lifecycle.set_issue(session_id, IssueCategory.LAG)

        assert session.title == "Lag - raiser vs opponent"
        assert platform.sessions[session_id].title == "Lag - raiser vs opponent"

    @pytest.mark.asyncio
    async def test_failed_rename_keeps_stored_title(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        platform.fail_operation("rename_session")
        await lifecycle.set_parties(session_id, "raiser-1", "opp-1")

        session = await lifecycle.set_issue(session_id, IssueCategory.NO_SHOW)

        assert session.issue == IssueCategory.NO_SHOW
        assert session.title is None

    @pytest.mark.asyncio
    async def test_set_affiliations_can_resync_conflicts(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        platform.sessions[session_id].member_ids.add("ref-2")

        session = await lifecycle.set_affiliations(
            session_id, party_b_affiliation="Valor [VA]", resync_conflicts=True
        )

        assert session.party_a_affiliation == "Canada [CA]"
        assert session.party_b_affiliation == "Valor [VA]"
        assert "ref-2" not in platform.sessions[session_id].member_ids

    @pytest.mark.asyncio
    async def test_decision_options_merge(
        self, lifecycle: SessionLifecycleService, session_id: str
    ) -> None:
        await lifecycle.set_decision_options(
            session_id, DecisionOptions(favour=PartySide.PARTY_A)
        )
        session = await lifecycle.set_decision_options(
            session_id, DecisionOptions(schedule_window="48 hours")
        )

        assert session.decision_options.favour == PartySide.PARTY_A
        assert session.decision_options.schedule_window == "48 hours"

    @pytest.mark.asyncio
    async def test_unknown_session(self, lifecycle: SessionLifecycleService) -> None:
        with pytest.raises(SessionNotFoundError):
            await lifecycle.set_issue("session-404", IssueCategory.LAG)


class TestPostDecision:
    @pytest.mark.asyncio
    async def test_prerequisites_are_required(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await lifecycle.set_issue(session_id, IssueCategory.LAG)

        with pytest.raises(MissingDecisionPrerequisitesError) as exc_info:
            await lifecycle.post_decision(session_id, DecisionOutcome.LAG_REMATCH)

        assert exc_info.value.missing_fields == ("Disputer", "Opponent")
        assert platform.session_texts(session_id) == []

    @pytest.mark.asyncio
    async def test_posts_in_session_without_results_channel(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await ready_for_decision(lifecycle, session_id)

        result = await lifecycle.post_decision(
            session_id,
            DecisionOutcome.LAG_REMATCH,
            overrides=DecisionOptions(team_rule=TeamRule.NEW_TEAMS),
        )

        assert result.posted_in_session
        assert result.channel_id == session_id
        assert "A **rematch will be granted**." in result.text
        assert "New teams may be used." in result.text
        assert platform.session_texts(session_id)[-1] == result.text

    @pytest.mark.asyncio
    async def test_detects_results_channel(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        platform.add_text_channel(
            "origin-guild", TextChannel("chat-1", "canada-ca-vs-great-britain-gb")
        )
        platform.add_text_channel(
            "origin-guild", TextChannel("res-1", "results-canada-ca-great-britain-gb")
        )
        await ready_for_decision(lifecycle, session_id)

        result = await lifecycle.post_decision(session_id, DecisionOutcome.LAG_NO_REMATCH)

        assert result.channel_id == "res-1"
        assert not result.posted_in_session
        assert [m.content for m in platform.messages["res-1"]] == [result.text]
        assert platform.session_texts(session_id)[-1] == "📣 Decision posted to <#res-1>."

    @pytest.mark.asyncio
    async def test_explicit_channel_wins(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await ready_for_decision(lifecycle, session_id)

        result = await lifecycle.post_decision(
            session_id, DecisionOutcome.LAG_WIN_PARTY_A, channel_id="rulings"
        )

        assert result.channel_id == "rulings"
        assert "<@raiser-1>" in platform.messages["rulings"][0].content

    @pytest.mark.asyncio
    async def test_failed_post_raises(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await ready_for_decision(lifecycle, session_id)
        platform.fail_operation("send_message", target=session_id)

        with pytest.raises(PlatformCallError):
            await lifecycle.post_decision(session_id, DecisionOutcome.LAG_REMATCH)


class TestOperatorCommands:
    @pytest.mark.asyncio
    async def test_message_parties_reports_blocked_dm(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await lifecycle.set_parties(session_id, "raiser-1", "opp-1")
        platform.fail_operation("send_direct_message", target="opp-1")

        result = await lifecycle.message_parties(session_id, PartyTarget.BOTH, "Please reply")

        assert result.delivered == ("raiser-1",)
        assert result.blocked == ("opp-1",)
        assert platform.direct_messages["raiser-1"] == ["Please reply"]
        assert platform.session_texts(session_id)[-1] == (
            "📤 **Bot DM:** Please reply\n✅ DM → <@raiser-1> • ❌ DM blocked → <@opp-1>"
        )

    @pytest.mark.asyncio
    async def test_message_parties_requires_parties(
        self, lifecycle: SessionLifecycleService, session_id: str
    ) -> None:
        with pytest.raises(MissingPartiesError):
            await lifecycle.message_parties(session_id, PartyTarget.PARTY_B, "hello")

    @pytest.mark.asyncio
    async def test_remove_conflicts(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        platform.sessions[session_id].member_ids.update({"ref-2", "ref-3"})

        result = await lifecycle.remove_conflicts(session_id)

        assert result.removed == ("ref-2", "ref-3")

    @pytest.mark.asyncio
    async def test_retag_adds_role_holders_and_pings(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        result = await lifecycle.retag(session_id)

        assert result.added == ("ref-4",)
        assert "ref-4" in platform.sessions[session_id].member_ids
        assert platform.session_texts(session_id)[-1] == f"<@&retag-role>\n{RETAG_PING_TEXT}"


class TestClose:
    @pytest.mark.asyncio
    async def test_close_runs_every_step(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        store: InMemorySessionStore,
        session_id: str,
    ) -> None:
        await lifecycle.set_parties(session_id, "raiser-1", "opp-1")

        result = await lifecycle.close(session_id)

        assert result.unrouted_user_ids == ("opp-1", "raiser-1")
        assert result.artifact_deleted
        assert result.raiser_notified
        assert result.closer_acknowledged
        assert result.archived
        assert result.locked

        assert platform.deleted_messages == [("dispute-channel", f"origin-{session_id}")]
        assert platform.direct_messages["raiser-1"] == [closing_notice(None)]
        assert platform.session_texts(session_id)[-1] == CLOSED_ACK_TEXT
        assert platform.sessions[session_id].archived
        assert platform.sessions[session_id].locked

        assert await store.get_session(session_id) is None
        assert await store.find_by_origin(f"message:dispute-channel:origin-{session_id}") is None
        assert await store.open_sessions("raiser-1") == frozenset()
        assert await store.open_sessions("opp-1") == frozenset()

    @pytest.mark.asyncio
    async def test_acknowledges_before_archiving(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        session_id: str,
    ) -> None:
        await lifecycle.close(session_id)

        order = [c for c in platform.calls if c in ("send_message", "set_locked", "set_archived")]
        assert order == ["send_message", "set_locked", "set_archived"]

    @pytest.mark.asyncio
    async def test_custom_acknowledgement(
        self, lifecycle: SessionLifecycleService, session_id: str
    ) -> None:
        acknowledged = asyncio.Event()

        async def acknowledge() -> None:
            acknowledged.set()

        result = await lifecycle.close(session_id, acknowledge=acknowledge)

        assert acknowledged.is_set()
        assert result.closer_acknowledged

    @pytest.mark.asyncio
    async def test_best_effort_failures_do_not_block_purge(
        self,
        lifecycle: SessionLifecycleService,
        platform: ChatPlatformStub,
        store: InMemorySessionStore,
        session_id: str,
    ) -> None:
        for operation in ("delete_message", "send_direct_message", "set_archived"):
            platform.fail_operation(operation)

        result = await lifecycle.close(session_id)

        assert not result.artifact_deleted
        assert not result.raiser_notified
        assert not result.archived
        assert result.locked
        assert await store.get_session(session_id) is None

    @pytest.mark.asyncio
    async def test_second_close_is_an_error(
        self, lifecycle: SessionLifecycleService, session_id: str
    ) -> None:
        await lifecycle.close(session_id)

        with pytest.raises(SessionNotOpenError):
            await lifecycle.close(session_id)

    @pytest.mark.asyncio
    async def test_edits_after_close_are_rejected(
        self, lifecycle: SessionLifecycleService, session_id: str
    ) -> None:
        await lifecycle.close(session_id)

        with pytest.raises(SessionNotOpenError):
            await lifecycle.set_issue(session_id, IssueCategory.LAG)

    def test_closing_notice_names_review_channel(self) -> None:
        assert closing_notice("review-1").endswith("please message <#review-1>")
