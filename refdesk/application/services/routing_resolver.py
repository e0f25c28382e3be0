"""Routing resolver.

Maps a user's private message to exactly one open session, or asks the
user to pick one. Forwarding is withheld until a target is known.

Resolution, for S = open_sessions(user):
- |S| = 0: tell the user there is no active dispute
- |S| = 1: forward there, whatever the selection says
- |S| >= 2: forward to the selection if it is still in S, otherwise
  present a choice among the labelled sessions

A target that no longer exists on the platform is dropped from the
user's index and resolution runs once more.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from structlog import get_logger

from refdesk.application.ports.results import (
    ChoiceAction,
    ChoiceResult,
    RouteAction,
    RouteResult,
)
from refdesk.domain.errors import PlatformCallError, PlatformNotFoundError
from refdesk.domain.models.platform import RouteChoiceOption

if TYPE_CHECKING:
    from refdesk.application.ports.chat_platform import (
        ChatPlatformProtocol,
        DisambiguationPromptProtocol,
    )
    from refdesk.application.ports.session_store import SessionStoreProtocol
    from refdesk.application.services.platform_calls import PlatformCaller
    from refdesk.domain.models.platform import InboundMessage

logger = get_logger(__name__)

ROUTE_PROMPT = "You have multiple active disputes. Which one is this message about?"
NO_SESSION_TEXT = (
    "I do not see any active disputes for you. To raise one, tag @Referee in "
    "the appropriate Dispute Request channel."
)
UNROUTABLE_TEXT = "I could not determine a dispute to forward this to."
ATTACHMENT_FALLBACK_NOTE = "(Attachments present but could not be forwarded)"

CHOICE_MISSING_TEXT = "No selection received."
CHOICE_UNAVAILABLE_TEXT = "That dispute is no longer available."
CHOICE_ACCEPTED_TEXT = "Got it. I will forward your DMs to that dispute thread."


def format_forwarded(message: InboundMessage) -> str:
    """Format a private message for posting into a session."""
    body = message.content or ("(attachment)" if message.attachment_urls else "(empty)")
    return f"📥 **{message.author_name} (DM):** {body}"


class RoutingResolver:
    """Routes private messages and commits disambiguation choices."""

    def __init__(
        self,
        store: SessionStoreProtocol,
        platform: ChatPlatformProtocol,
        prompt: DisambiguationPromptProtocol,
        caller: PlatformCaller,
        choice_limit: int = 25,
    ) -> None:
        """Initialize the resolver.

        Args:
            store: Session store holding the routing index.
            platform: Chat platform client.
            prompt: Disambiguation UI.
            caller: Bounded platform call runner.
            choice_limit: Max options offered in one prompt.
        """
        self._store = store
        self._platform = platform
        self._prompt = prompt
        self._caller = caller
        self._choice_limit = choice_limit

    async def route_message(self, message: InboundMessage) -> RouteResult:
        """Forward a private message to its session or ask for a choice.

        Args:
            message: The private message.

        Returns:
            RouteResult describing where the message went.
        """
        user_id = message.author_id
        if not message.is_private or message.author_is_bot:
            return RouteResult(action=RouteAction.UNROUTABLE, user_id=user_id)

        log = logger.bind(user_id=user_id, message_id=message.message_id)

        for _ in range(2):
            lookup = await self._store.lookup_route(user_id)

            if not lookup.has_sessions:
                log.info("route_no_session")
                await self._tell(user_id, NO_SESSION_TEXT)
                return RouteResult(action=RouteAction.NO_SESSION, user_id=user_id)

            if lookup.target is None:
                return await self._request_choice(user_id, lookup.candidates)

            try:
                await self._forward(lookup.target, message)
            except PlatformNotFoundError:
                # Session thread is gone; drop it and resolve again
                log.warning("route_target_missing", session_id=lookup.target)
                await self._store.remove_participant(user_id, lookup.target)
                continue
            except PlatformCallError as e:
                log.warning("route_forward_failed", session_id=lookup.target, reason=e.reason)
                await self._tell(user_id, UNROUTABLE_TEXT)
                return RouteResult(
                    action=RouteAction.UNROUTABLE, user_id=user_id, session_id=lookup.target
                )

            log.info("message_forwarded", session_id=lookup.target)
            return RouteResult(
                action=RouteAction.FORWARDED, user_id=user_id, session_id=lookup.target
            )

        await self._tell(user_id, UNROUTABLE_TEXT)
        return RouteResult(action=RouteAction.UNROUTABLE, user_id=user_id)

    async def resolve_choice(self, user_id: str, session_id: str | None) -> ChoiceResult:
        """Commit a user's disambiguation answer.

        The choice is validated against the user's current open set, so a
        session closed between the offer and the answer is rejected.

        Args:
            user_id: User who answered.
            session_id: The chosen session, or None if no value came back.

        Returns:
            ChoiceResult with the reply text for the user.
        """
        if not session_id:
            return ChoiceResult(
                action=ChoiceAction.NO_ANSWER,
                user_id=user_id,
                session_id=None,
                message=CHOICE_MISSING_TEXT,
            )

        if not await self._store.select_session(user_id, session_id):
            logger.info("route_choice_rejected", user_id=user_id, session_id=session_id)
            return ChoiceResult(
                action=ChoiceAction.REJECTED,
                user_id=user_id,
                session_id=session_id,
                message=CHOICE_UNAVAILABLE_TEXT,
            )

        logger.info("route_choice_accepted", user_id=user_id, session_id=session_id)
        return ChoiceResult(
            action=ChoiceAction.ACCEPTED,
            user_id=user_id,
            session_id=session_id,
            message=CHOICE_ACCEPTED_TEXT,
        )

    async def _request_choice(
        self, user_id: str, candidates: tuple[str, ...]
    ) -> RouteResult:
        options: list[RouteChoiceOption] = []
        for session_id in candidates:
            session = await self._store.get_session(session_id)
            if session is None or not session.is_open:
                continue
            options.append(RouteChoiceOption(value=session_id, label=session.route_label()))
        options = options[: self._choice_limit]

        delivered = await self._caller.attempt(
            "present_choices",
            self._prompt.present_choices(user_id, ROUTE_PROMPT, options),
            user_id=user_id,
        )
        offered = tuple(option.value for option in options)
        if not delivered:
            await self._tell(user_id, UNROUTABLE_TEXT)
            return RouteResult(action=RouteAction.UNROUTABLE, user_id=user_id, offered=offered)

        logger.info("route_choice_requested", user_id=user_id, offered=list(offered))
        return RouteResult(
            action=RouteAction.DISAMBIGUATION_REQUESTED, user_id=user_id, offered=offered
        )

    async def _forward(self, session_id: str, message: InboundMessage) -> None:
        """Post a private message into a session.

        Raises:
            PlatformNotFoundError: If the session no longer exists.
            PlatformCallError: If the text could not be posted at all.
        """
        content = format_forwarded(message)
        if not message.attachment_urls:
            await self._caller.call(
                "send_message", self._platform.send_message(session_id, content)
            )
            return

        try:
            await self._caller.call(
                "send_message",
                self._platform.send_message(session_id, content, message.attachment_urls),
            )
        except PlatformNotFoundError:
            raise
        except PlatformCallError as e:
            logger.warning(
                "attachment_forward_failed", session_id=session_id, reason=e.reason
            )
            await self._caller.call(
                "send_message",
                self._platform.send_message(
                    session_id, f"{content}\n{ATTACHMENT_FALLBACK_NOTE}"
                ),
            )

    async def _tell(self, user_id: str, content: str) -> None:
        await self._caller.best_effort(
            "send_direct_message",
            self._platform.send_direct_message(user_id, content),
            user_id=user_id,
        )
