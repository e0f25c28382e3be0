"""Unit tests for the chat platform and prompt stubs."""

import pytest

from refdesk.domain.errors import PlatformCallError, PlatformNotFoundError
from refdesk.domain.models.platform import RouteChoiceOption
from refdesk.infrastructure.stubs import ChatPlatformStub, DisambiguationPromptStub
from tests.helpers import seeded_platform


class TestChatPlatformStub:
    @pytest.mark.asyncio
    async def test_session_lifecycle_is_recorded(self) -> None:
        stub = ChatPlatformStub()
        session_id = await stub.create_private_session("hub", "Dispute - bob")
        await stub.add_member(session_id, "ref-1")
        await stub.send_message(session_id, "hello")
        await stub.set_locked(session_id, True)

        assert stub.sessions[session_id].title == "Dispute - bob"
        assert await stub.fetch_session_member_ids(session_id) == {"ref-1"}
        assert stub.session_texts(session_id) == ["hello"]
        assert stub.sessions[session_id].locked

    @pytest.mark.asyncio
    async def test_targeted_failure_only_hits_target(self) -> None:
        stub = ChatPlatformStub()
        stub.fail_operation("send_direct_message", target="user-1")

        with pytest.raises(PlatformCallError):
            await stub.send_direct_message("user-1", "hi")
        await stub.send_direct_message("user-2", "hi")
        assert stub.direct_messages == {"user-2": ["hi"]}

    @pytest.mark.asyncio
    async def test_failure_with_times_recovers(self) -> None:
        stub = ChatPlatformStub()
        stub.fail_operation("create_private_session", times=1)

        with pytest.raises(PlatformCallError):
            await stub.create_private_session("hub", "t")
        assert await stub.create_private_session("hub", "t")
        assert stub.call_count("create_private_session") == 2

    @pytest.mark.asyncio
    async def test_removed_session_reports_not_found(self) -> None:
        stub = ChatPlatformStub()
        session_id = await stub.create_private_session("hub", "t")
        stub.delete_session_externally(session_id)

        with pytest.raises(PlatformNotFoundError):
            await stub.send_message(session_id, "late")
        with pytest.raises(PlatformNotFoundError):
            await stub.add_member(session_id, "ref-1")

    @pytest.mark.asyncio
    async def test_seeded_members_and_users(self) -> None:
        stub = seeded_platform()
        member = await stub.fetch_member("dest-guild", "ref-2")
        assert member is not None
        assert member.role_names == ("Referee", "Canada [CA]")
        assert await stub.fetch_member("dest-guild", "nobody") is None
        assert (await stub.fetch_user("ref-1")).username == "alice"
        with pytest.raises(PlatformNotFoundError):
            await stub.fetch_user("nobody")


class TestDisambiguationPromptStub:
    @pytest.mark.asyncio
    async def test_records_prompt(self) -> None:
        stub = DisambiguationPromptStub()
        choices = [RouteChoiceOption("s-1", "Lag"), RouteChoiceOption("s-2", "No Show")]

        assert await stub.present_choices("user-1", "Which?", choices) is True
        recorded = stub.last_prompt_for("user-1")
        assert recorded is not None
        assert recorded.values == ("s-1", "s-2")

    @pytest.mark.asyncio
    async def test_blocked_user_and_empty_choices_not_delivered(self) -> None:
        stub = DisambiguationPromptStub()
        stub.block_user("user-1")

        assert await stub.present_choices("user-1", "Which?", [RouteChoiceOption("s", "x")]) is False
        assert await stub.present_choices("user-2", "Which?", []) is False
        assert stub.prompts == []
