"""Event dispatcher.

Runs every inbound message event as its own asyncio task, so a slow
platform call for one event never holds up another. Community messages go
to intake; private messages go to routing.

Each task binds its event identity into structlog's context variables;
since tasks copy the context they were created in, bindings never leak
between events.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from structlog import get_logger

from refdesk.application.ports.results import IntakeResult, RouteResult

if TYPE_CHECKING:
    from refdesk.application.services.intake_coordinator import IntakeCoordinator
    from refdesk.application.services.routing_resolver import RoutingResolver
    from refdesk.domain.models.platform import InboundMessage

logger = get_logger(__name__)


class EventDispatcher:
    """Dispatches inbound message events as independent tasks.

    Attributes:
        _tasks: Tasks still running. Held so they are not garbage
            collected mid-flight.
    """

    def __init__(self, intake: IntakeCoordinator, router: RoutingResolver) -> None:
        self._intake = intake
        self._router = router
        self._tasks: set[asyncio.Task[IntakeResult | RouteResult | None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch_message(
        self, message: InboundMessage
    ) -> asyncio.Task[IntakeResult | RouteResult | None]:
        """Schedule a message event and return its task immediately.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self._run(message), name=f"message:{message.message_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_message(self, message: InboundMessage) -> IntakeResult | RouteResult:
        """Handle one message event in the current task."""
        if message.is_private:
            return await self._router.route_message(message)
        return await self._intake.handle_trigger(message)

    async def drain(self) -> None:
        """Wait for every dispatched task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, message: InboundMessage) -> IntakeResult | RouteResult | None:
        # Events that did not arrive through a request get their own trace id
        if "correlation_id" not in structlog.contextvars.get_contextvars():
            structlog.contextvars.bind_contextvars(
                correlation_id=f"event-{message.message_id}"
            )
        structlog.contextvars.bind_contextvars(
            event_message_id=message.message_id,
            event_kind="private" if message.is_private else "community",
        )
        try:
            return await self.handle_message(message)
        except Exception:
            # Task boundary: nothing awaits this task's result
            logger.exception("event_handler_failed", author_id=message.author_id)
            return None
