"""Unit tests for EventDispatcher."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import structlog

from refdesk.application.ports.results import IntakeAction, RouteAction
from refdesk.application.services.event_dispatcher import EventDispatcher
from refdesk.bootstrap.container import RelayContainer
from refdesk.infrastructure.stubs import ChatPlatformStub
from tests.helpers import private_message, trigger_message


class TestEventDispatcher:
    @pytest.mark.asyncio
    async def test_community_message_goes_to_intake(self, container: RelayContainer) -> None:
        result = await container.dispatcher.dispatch_message(trigger_message())
        assert result.action == IntakeAction.CREATED

    @pytest.mark.asyncio
    async def test_private_message_goes_to_routing(self, container: RelayContainer) -> None:
        result = await container.dispatcher.dispatch_message(private_message("nobody"))
        assert result.action == RouteAction.NO_SESSION

    @pytest.mark.asyncio
    async def test_slow_event_does_not_block_others(
        self, container: RelayContainer, platform: ChatPlatformStub
    ) -> None:
        platform.set_delay("create_private_session", 0.2)
        dispatcher = container.dispatcher

        slow = dispatcher.dispatch_message(trigger_message())
        await asyncio.sleep(0.01)
        fast = dispatcher.dispatch_message(private_message("nobody"))

        fast_result = await asyncio.wait_for(fast, timeout=0.1)

        assert fast_result.action == RouteAction.NO_SESSION
        assert not slow.done()
        await dispatcher.drain()
        assert slow.result().action == IntakeAction.CREATED

    @pytest.mark.asyncio
    async def test_handler_error_is_contained(self) -> None:
        intake = AsyncMock()
        intake.handle_trigger.side_effect = RuntimeError("boom")
        dispatcher = EventDispatcher(intake=intake, router=AsyncMock())

        result = await dispatcher.dispatch_message(trigger_message())

        assert result is None
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_pending_tasks(self, container: RelayContainer) -> None:
        dispatcher = container.dispatcher
        for n in range(3):
            dispatcher.dispatch_message(trigger_message(f"msg-{n}"))

        assert dispatcher.pending == 3
        await dispatcher.drain()

        assert dispatcher.pending == 0
        assert len(await container.store.list_open_sessions()) == 3


class TestEventLogContext:
    @staticmethod
    def _recording_intake(seen: list[dict[str, object]]) -> AsyncMock:
        async def record(message: object) -> None:
            seen.append(structlog.contextvars.get_contextvars())

        intake = AsyncMock()
        intake.handle_trigger.side_effect = record
        return intake

    @pytest.mark.asyncio
    async def test_event_task_binds_its_identity(self) -> None:
        seen: list[dict[str, object]] = []
        dispatcher = EventDispatcher(intake=self._recording_intake(seen), router=AsyncMock())

        await dispatcher.dispatch_message(trigger_message("msg-7"))

        assert seen[0]["event_message_id"] == "msg-7"
        assert seen[0]["event_kind"] == "community"
        assert seen[0]["correlation_id"] == "event-msg-7"
        assert "event_message_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_request_correlation_id_is_kept(self) -> None:
        seen: list[dict[str, object]] = []
        dispatcher = EventDispatcher(intake=self._recording_intake(seen), router=AsyncMock())

        structlog.contextvars.bind_contextvars(correlation_id="req-1")
        try:
            await dispatcher.dispatch_message(trigger_message("msg-8"))
        finally:
            structlog.contextvars.clear_contextvars()

        assert seen[0]["correlation_id"] == "req-1"
