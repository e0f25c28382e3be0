"""Intake coordinator.

Turns a qualifying trigger message into exactly one open dispute session.

Flow:
1. Qualify: configured origin, its dispute channel (or a thread under it),
   mentions the trigger role or the bot, human author
2. Mark the trigger (store marker + acknowledgement reaction); re-delivery
   of a marked trigger is a no-op
3. Detect affiliations; a missing opposing affiliation aborts with a reply
4. Create-or-reuse. Steps 2-4 run under the per-origin lock, which is
   held across the external create call
5. Populate the session: reactions, posts, roster sync, raiser DM

Only steps 1-4 decide the outcome. Everything in step 5 is best-effort.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from structlog import get_logger

from refdesk.application.ports.results import IntakeAction, IntakeResult
from refdesk.application.services.keyed_locks import KeyedLockRegistry
from refdesk.domain.errors import (
    MissingOpposingAffiliationError,
    PlatformCallError,
    SessionCreationError,
)
from refdesk.domain.models.dispute_session import DisputeSession, OriginReference
from refdesk.domain.services.conflict_matcher import is_affiliation_label

if TYPE_CHECKING:
    from refdesk.application.ports.chat_platform import ChatPlatformProtocol
    from refdesk.application.ports.session_store import SessionStoreProtocol
    from refdesk.application.services.platform_calls import PlatformCaller
    from refdesk.application.services.roster_synchronizer import RosterSynchronizer
    from refdesk.config.relay_config import OriginConfig, RelayConfig
    from refdesk.domain.models.platform import InboundMessage

logger = get_logger(__name__)

ACK_EMOJI = "✅"
CREATED_EMOJI = "🧵"

CREATION_FAILED_REPLY = (
    "I could not open a dispute thread for this request. Nothing was "
    "recorded; please raise it again in a new message."
)
DM_FAILED_REPLY = (
    "I tried to DM you but could not. Please keep evidence **in this thread** "
    "and enable DMs if possible."
)


def logical_key(message: InboundMessage) -> str:
    """Derive the creation key of a trigger.

    Triggers inside a thread share the thread's key, so every trigger in
    one dispute thread maps to one session. Any other trigger is its own
    origin.
    """
    if message.is_thread:
        return f"thread:{message.channel_id}"
    return f"message:{message.channel_id}:{message.message_id}"


def build_intro(
    raiser_name: str,
    raiser_affiliation: str | None,
    opposing_affiliation: str | None,
    origin_guild_name: str | None,
    adjudicator_role_ids: tuple[str, ...],
) -> str:
    """Build the first message posted into a new session."""
    role_mentions = " ".join(f"<@&{role_id}>" for role_id in adjudicator_role_ids)
    if raiser_affiliation or opposing_affiliation:
        affiliations = (
            f"**Countries:** {raiser_affiliation or 'Unknown'} vs "
            f"{opposing_affiliation or 'Unknown'}"
        )
    else:
        affiliations = "**Countries:** (not detected)"
    return "\n".join(
        [
            role_mentions,
            f"**Dispute Thread for {raiser_name}.**",
            affiliations,
            f"**Origin:** {origin_guild_name or 'Unknown'}",
            "",
            "— **Referee quick start** —",
            "• Set the issue (Lag, Communication, Device Issue, No Show, "
            "Wrong Pokemon or Moveset).",
            "• Set Disputer & Opponent; the thread title updates automatically.",
            "• Remove conflicts any time to purge conflicted referees.",
            "• Retag to ping the retag role again.",
        ]
    )


def build_raiser_dm(raiser_name: str, link: str | None) -> str:
    """Build the private message sent to the raiser after creation."""
    return "\n".join(
        [
            f"Hi {raiser_name}, this is the **Referee Team**.",
            "Please send all evidence and messages **in this DM**. We will "
            "mirror everything privately for the referees.",
            "",
            "**Questions to answer:**",
            "• Please describe the issue.",
            "• Who was involved?",
            "• Please provide screenshots of your communication.",
            "• For Gameplay disputes, please provide full video evidence.",
            "",
            "Reference link to your dispute:",
            link or "(link unavailable)",
        ]
    )


class IntakeCoordinator:
    """Creates or reuses the dispute session for a trigger message.

    Concurrency: creation is serialized per logical key. Two triggers on
    the same key yield one session; the second observes the first's id.
    Unrelated keys never wait on each other.
    """

    def __init__(
        self,
        store: SessionStoreProtocol,
        platform: ChatPlatformProtocol,
        roster: RosterSynchronizer,
        caller: PlatformCaller,
        config: RelayConfig,
        locks: KeyedLockRegistry | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Session store.
            platform: Chat platform client.
            roster: Roster synchronizer used to populate new sessions.
            caller: Bounded platform call runner.
            config: Relay configuration.
            locks: Keyed lock registry, shared with other services.
        """
        self._store = store
        self._platform = platform
        self._roster = roster
        self._caller = caller
        self._config = config
        self._locks = locks if locks is not None else KeyedLockRegistry()

    def qualifying_origin(self, message: InboundMessage) -> OriginConfig | None:
        """Return the origin a message triggers intake for, if any."""
        if message.is_private or message.author_is_bot:
            return None
        origin = self._config.origin_for_guild(message.guild_id)
        if origin is None:
            return None
        in_dispute_channel = origin.dispute_channel_id in (
            message.channel_id,
            message.parent_channel_id,
        )
        if not in_dispute_channel:
            return None
        addressed = message.mentions_role(origin.trigger_role_id) or (
            self._config.bot_user_id is not None
            and message.mentions_user(self._config.bot_user_id)
        )
        return origin if addressed else None

    async def handle_trigger(self, message: InboundMessage) -> IntakeResult:
        """Handle a community message that may be a dispute trigger.

        Args:
            message: The inbound community message.

        Returns:
            IntakeResult describing what happened.
        """
        origin = self.qualifying_origin(message)
        if origin is None:
            return IntakeResult(action=IntakeAction.IGNORED)

        log = logger.bind(
            origin=origin.key,
            channel_id=message.channel_id,
            message_id=message.message_id,
            raiser_id=message.author_id,
        )

        # The per-origin lock covers marking through registration, so a
        # redelivery waits for the first delivery and reports its session
        key = logical_key(message)
        async with self._locks.hold(f"origin:{key}"):
            # Step 1: Idempotency marker before any heavy work
            already_reacted = ACK_EMOJI in message.reaction_emojis
            if already_reacted or not await self._store.mark_trigger(
                message.channel_id, message.message_id
            ):
                existing = await self._store.find_by_origin(key)
                session_id = existing.session_id if existing is not None else None
                log.info("trigger_already_handled", session_id=session_id)
                return IntakeResult(
                    action=IntakeAction.DUPLICATE_TRIGGER, session_id=session_id
                )
            await self._caller.best_effort(
                "add_reaction",
                self._platform.add_reaction(message.channel_id, message.message_id, ACK_EMOJI),
                message_id=message.message_id,
            )

            # Step 2: Affiliations
            try:
                raiser_affiliation, opposing_affiliation = await self._detect_affiliations(
                    message
                )
            except MissingOpposingAffiliationError as e:
                log.info("trigger_rejected_missing_affiliation")
                await self._reply(message, str(e))
                return IntakeResult(action=IntakeAction.REJECTED, message=str(e))

            # Step 3: Create or reuse
            existing = await self._store.find_by_origin(key)
            if existing is not None:
                log.info("session_reused", session_id=existing.session_id)
                return IntakeResult(
                    action=IntakeAction.REUSED,
                    session_id=existing.session_id,
                    message="A dispute thread already exists for this request.",
                )

            try:
                session_id = await self._caller.call(
                    "create_private_session",
                    self._platform.create_private_session(
                        self._config.hub_channel_id,
                        f"Dispute - {message.author_label}",
                    ),
                )
            except PlatformCallError as e:
                error = SessionCreationError(key, e.reason)
                log.error("session_creation_failed", error=str(error))
                await self._reply(message, CREATION_FAILED_REPLY)
                return IntakeResult(action=IntakeAction.FAILED, message=str(error))

            session = DisputeSession(
                session_id=session_id,
                raiser_id=message.author_id,
                origin=OriginReference(
                    guild_id=origin.guild_id,
                    channel_id=message.channel_id,
                    message_id=message.message_id,
                    url=message.url,
                ),
                origin_key=key,
                party_a_affiliation=raiser_affiliation,
                party_b_affiliation=opposing_affiliation,
            )
            await self._store.register_session(session)

        log.info("session_created", session_id=session_id)

        # Step 4: Populate (best-effort from here on)
        await self._populate(session, message)

        return IntakeResult(
            action=IntakeAction.CREATED,
            session_id=session_id,
            message="Dispute thread created.",
        )

    async def _detect_affiliations(
        self, message: InboundMessage
    ) -> tuple[str | None, str]:
        """Find the raiser's affiliation and the opposing one.

        Raises:
            MissingOpposingAffiliationError: If no mentioned role names an
                affiliation other than the raiser's.
        """
        raiser_affiliation: str | None = None
        member = await self._caller.attempt(
            "fetch_member",
            self._platform.fetch_member(message.guild_id or "", message.author_id),
            user_id=message.author_id,
        )
        if member is not None:
            raiser_affiliation = next(
                (name for name in member.role_names if is_affiliation_label(name)), None
            )

        opposing = next(
            (
                role.name
                for role in message.mentioned_roles
                if is_affiliation_label(role.name) and role.name != raiser_affiliation
            ),
            None,
        )
        if opposing is None:
            raise MissingOpposingAffiliationError(message.author_id)
        return raiser_affiliation, opposing

    async def _populate(self, session: DisputeSession, message: InboundMessage) -> None:
        """Run the post-creation steps in order. None of them can fail intake."""
        sid = session.session_id
        await self._caller.best_effort(
            "add_reaction",
            self._platform.add_reaction(message.channel_id, message.message_id, CREATED_EMOJI),
            session_id=sid,
        )

        source_lines = []
        if message.url:
            source_lines.append(f"🔗 **Source:** {message.url}")
        source_lines.append(
            f"🗺️ **Origin Server:** {message.guild_name or message.guild_id}"
        )
        await self._caller.best_effort(
            "send_message",
            self._platform.send_message(sid, "\n".join(source_lines)),
            session_id=sid,
        )
        await self._caller.best_effort(
            "send_message",
            self._platform.send_message(
                sid,
                build_intro(
                    message.author_label,
                    session.party_a_affiliation,
                    session.party_b_affiliation,
                    message.guild_name,
                    self._config.adjudicator_role_ids,
                ),
            ),
            session_id=sid,
        )

        try:
            await self._roster.add_all_eligible(session)
        except PlatformCallError as e:
            logger.warning("roster_populate_failed", session_id=sid, reason=e.reason)
        await self._roster.remove_conflicted(session, session.affiliation_labels)
        await self._roster.purge_parties(session)

        dm_sent = await self._caller.best_effort(
            "send_direct_message",
            self._platform.send_direct_message(
                message.author_id, build_raiser_dm(message.author_label, message.url)
            ),
            session_id=sid,
            user_id=message.author_id,
        )
        if not dm_sent:
            await self._reply(message, DM_FAILED_REPLY)

    async def _reply(self, message: InboundMessage, content: str) -> None:
        await self._caller.best_effort(
            "reply_to_message",
            self._platform.reply_to_message(message.channel_id, message.message_id, content),
            message_id=message.message_id,
        )
