"""Session lifecycle service.

Applies operator edits to open sessions, runs operator commands, and
closes sessions.

Every edit and the close run under the per-session lock, so two commands
against one session never interleave their read-modify-write steps.

Close steps, in order:
1. Unregister the session from every user's routing set (mandatory)
2. Delete the origin artifact (best-effort)
3. Notify the raiser (best-effort)
4. Acknowledge the closer before the slow archive step (best-effort)
5. Lock and archive the session (best-effort)
6. Purge the session and its origin key from the store (mandatory, last)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from structlog import get_logger

from refdesk.application.ports.results import (
    CloseResult,
    DecisionPostResult,
    PartyMessageResult,
    RosterSyncResult,
)
from refdesk.application.services.keyed_locks import KeyedLockRegistry
from refdesk.domain.errors import (
    MissingDecisionPrerequisitesError,
    MissingPartiesError,
)
from refdesk.domain.models.dispute_session import (
    DecisionOptions,
    DisputeSession,
    IssueCategory,
    PartyTarget,
)
from refdesk.domain.services.decision_text import DecisionOutcome, render_decision
from refdesk.domain.services.session_presentation import pick_decision_channel

if TYPE_CHECKING:
    from refdesk.application.ports.chat_platform import ChatPlatformProtocol
    from refdesk.application.ports.session_store import SessionStoreProtocol
    from refdesk.application.services.platform_calls import PlatformCaller
    from refdesk.application.services.roster_synchronizer import RosterSynchronizer
    from refdesk.config.relay_config import RelayConfig

logger = get_logger(__name__)

Acknowledge = Callable[[], Awaitable[None]]

RETAG_PING_TEXT = (
    "Please review this dispute. If you were removed as conflicted, do not rejoin."
)
CLOSED_ACK_TEXT = "✅ Dispute closed (archived & locked)."


def closing_notice(review_channel_id: str | None) -> str:
    """Text sent privately to the raiser when their dispute closes."""
    review = f" <#{review_channel_id}>" if review_channel_id else " the Dispute Review channel."
    return (
        "Your dispute has been **Closed** by the referees. If you need to "
        f"follow up, please message{review}"
    )


class SessionLifecycleService:
    """Edits, operator commands and closing for dispute sessions.

    Example:
        >>> await lifecycle.set_parties(session_id, "u-a", "u-b")
        >>> await lifecycle.set_issue(session_id, IssueCategory.LAG)
        >>> await lifecycle.post_decision(session_id, DecisionOutcome.LAG_REMATCH)
        >>> await lifecycle.close(session_id)
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
        """Initialize the service.

        Args:
            store: Session store.
            platform: Chat platform client.
            roster: Roster synchronizer for re-syncs after edits.
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

    async def get_session(self, session_id: str) -> DisputeSession:
        """Get an open session.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionNotOpenError: If the session was closed.
        """
        return await self._store.require_open(session_id)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    async def set_parties(
        self, session_id: str, party_a_id: str, party_b_id: str
    ) -> DisputeSession:
        """Assign both parties, index them for routing and purge them.

        Args:
            session_id: Session to edit.
            party_a_id: Disputer.
            party_b_id: Opponent.

        Returns:
            The updated session.

        Raises:
            SessionNotOpenError: If the session is closed or unknown.
        """
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.assign_parties(session_id, party_a_id, party_b_id)
            session = await self._refresh_title(session)
            await self._roster.purge_parties(session)

        logger.info(
            "parties_set",
            session_id=session_id,
            party_a_id=party_a_id,
            party_b_id=party_b_id,
        )
        return session

    async def set_issue(self, session_id: str, issue: IssueCategory) -> DisputeSession:
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.update_session(
                session_id, lambda s: s.with_issue(issue)
            )
            session = await self._refresh_title(session)

        logger.info("issue_set", session_id=session_id, issue=issue.value)
        return session

    async def set_affiliations(
        self,
        session_id: str,
        party_a_affiliation: str | None = None,
        party_b_affiliation: str | None = None,
        resync_conflicts: bool = False,
    ) -> DisputeSession:
        """Correct the party affiliation labels.

        Args:
            session_id: Session to edit.
            party_a_affiliation: New disputer label, None keeps the current one.
            party_b_affiliation: New opponent label, None keeps the current one.
            resync_conflicts: Re-run conflict removal with the new labels.

        Returns:
            The updated session.
        """
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.update_session(
                session_id,
                lambda s: s.with_affiliations(party_a_affiliation, party_b_affiliation),
            )
            if resync_conflicts:
                await self._roster.remove_conflicted(session, session.affiliation_labels)

        logger.info(
            "affiliations_set",
            session_id=session_id,
            labels=list(session.affiliation_labels),
        )
        return session

    async def set_decision_options(
        self, session_id: str, options: DecisionOptions
    ) -> DisputeSession:
        """Merge decision options into the session. Unset fields are kept."""
        async with self._locks.hold(f"session:{session_id}"):
            return await self._store.update_session(
                session_id, lambda s: s.with_decision_options(options)
            )

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    async def remove_conflicts(self, session_id: str) -> RosterSyncResult:
        """Re-run conflict removal with the current affiliation labels."""
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.require_open(session_id)
            return await self._roster.remove_conflicted(session, session.affiliation_labels)

    async def retag(self, session_id: str) -> RosterSyncResult:
        """Remove conflicts, add the retag role's holders and ping the role.

        Falls back to the first adjudicator role when no retag role is
        configured.
        """
        role_id = self._config.retag_role_id or self._config.adjudicator_role_ids[0]
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.require_open(session_id)
            await self._roster.remove_conflicted(session, session.affiliation_labels)
            result = await self._roster.add_by_capability(session, role_id)
            await self._caller.best_effort(
                "send_message",
                self._platform.send_message(session_id, f"<@&{role_id}>\n{RETAG_PING_TEXT}"),
                session_id=session_id,
            )
        return result

    async def message_parties(
        self, session_id: str, target: PartyTarget, text: str
    ) -> PartyMessageResult:
        """DM the targeted parties and echo a delivery summary in the session.

        Raises:
            MissingPartiesError: If none of the targeted parties are set.
        """
        session = await self._store.require_open(session_id)
        if target == PartyTarget.PARTY_A:
            recipients = [session.party_a_id]
        elif target == PartyTarget.PARTY_B:
            recipients = [session.party_b_id]
        else:
            recipients = [session.party_a_id, session.party_b_id]
        user_ids = [user_id for user_id in recipients if user_id]
        if not user_ids:
            raise MissingPartiesError(session_id)

        delivered: list[str] = []
        blocked: list[str] = []
        for user_id in user_ids:
            ok = await self._caller.best_effort(
                "send_direct_message",
                self._platform.send_direct_message(user_id, text),
                session_id=session_id,
                user_id=user_id,
            )
            (delivered if ok else blocked).append(user_id)

        summary = " • ".join(
            [f"✅ DM → <@{u}>" for u in delivered] + [f"❌ DM blocked → <@{u}>" for u in blocked]
        )
        await self._caller.best_effort(
            "send_message",
            self._platform.send_message(session_id, f"📤 **Bot DM:** {text}\n{summary}"),
            session_id=session_id,
        )
        return PartyMessageResult(
            session_id=session_id, delivered=tuple(delivered), blocked=tuple(blocked)
        )

    async def post_decision(
        self,
        session_id: str,
        outcome: DecisionOutcome,
        overrides: DecisionOptions | None = None,
        channel_id: str | None = None,
    ) -> DecisionPostResult:
        """Render and post the ruling for a session.

        Overrides are merged into the session's stored options first, so
        later posts do not need them again.

        Args:
            session_id: Session being ruled on.
            outcome: Ruling template.
            overrides: Options supplied with this request.
            channel_id: Explicit target channel.

        Returns:
            Where the ruling went and its text.

        Raises:
            MissingDecisionPrerequisitesError: If parties or issue are unset.
                Nothing is posted.
            PlatformCallError: If the ruling could not be posted.
        """
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.require_open(session_id)
            missing = session.missing_decision_prerequisites()
            if missing:
                logger.info(
                    "decision_rejected_missing_prerequisites",
                    session_id=session_id,
                    missing=missing,
                )
                raise MissingDecisionPrerequisitesError(session_id, missing)

            if overrides is not None:
                session = await self._store.update_session(
                    session_id, lambda s: s.with_decision_options(overrides)
                )

        text = render_decision(session, outcome, session.decision_options, session.raiser_id)
        target = channel_id or await self._find_decision_channel(session)

        if target is None or target == session_id:
            await self._caller.call(
                "send_message", self._platform.send_message(session_id, text)
            )
            logger.info("decision_posted", session_id=session_id, channel_id=session_id)
            return DecisionPostResult(
                session_id=session_id, channel_id=session_id, posted_in_session=True, text=text
            )

        await self._caller.call("send_message", self._platform.send_message(target, text))
        await self._caller.best_effort(
            "send_message",
            self._platform.send_message(session_id, f"📣 Decision posted to <#{target}>."),
            session_id=session_id,
        )
        logger.info("decision_posted", session_id=session_id, channel_id=target)
        return DecisionPostResult(
            session_id=session_id, channel_id=target, posted_in_session=False, text=text
        )

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    async def close(
        self, session_id: str, acknowledge: Acknowledge | None = None
    ) -> CloseResult:
        """Close a session.

        Args:
            session_id: Session to close.
            acknowledge: Reply to the closer. Defaults to posting the
                acknowledgement into the session.

        Returns:
            CloseResult recording which best-effort steps succeeded.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionNotOpenError: If the session is already closed.
        """
        async with self._locks.hold(f"session:{session_id}"):
            session = await self._store.require_open(session_id)
            log = logger.bind(session_id=session_id)

            # Step 1: Routing removal for every indexed user
            unrouted = await self._store.unregister_routing(session_id)

            # Step 2: Origin artifact
            artifact_deleted = await self._caller.best_effort(
                "delete_message",
                self._platform.delete_message(
                    session.origin.channel_id, session.origin.message_id
                ),
                session_id=session_id,
            )

            # Step 3: Raiser notification
            raiser_notified = await self._caller.best_effort(
                "send_direct_message",
                self._platform.send_direct_message(
                    session.raiser_id, closing_notice(self._config.review_channel_id)
                ),
                session_id=session_id,
                user_id=session.raiser_id,
            )

            # Step 4: Acknowledge while the session is still active
            if acknowledge is None:
                acknowledgement = self._platform.send_message(session_id, CLOSED_ACK_TEXT)
            else:
                acknowledgement = acknowledge()
            closer_acknowledged = await self._caller.best_effort(
                "acknowledge_close", acknowledgement, session_id=session_id
            )

            # Step 5: Lock, then archive
            locked = await self._caller.best_effort(
                "set_locked", self._platform.set_locked(session_id, True), session_id=session_id
            )
            archived = await self._caller.best_effort(
                "set_archived",
                self._platform.set_archived(session_id, True),
                session_id=session_id,
            )

            # Step 6: Purge, only after every step was attempted
            await self._store.purge_session(session_id)

        result = CloseResult(
            session_id=session_id,
            unrouted_user_ids=tuple(sorted(unrouted)),
            artifact_deleted=artifact_deleted,
            raiser_notified=raiser_notified,
            closer_acknowledged=closer_acknowledged,
            archived=archived,
            locked=locked,
        )
        log.info("session_closed", **result.to_dict())
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _refresh_title(self, session: DisputeSession) -> DisputeSession:
        """Rename the session once both parties and the issue are known."""
        if session.missing_decision_prerequisites():
            return session
        party_a_name = await self._display_name(session.party_a_id, "Disputer")
        party_b_name = await self._display_name(session.party_b_id, "Opponent")
        title = session.derive_title(party_a_name, party_b_name)
        if title is None or title == session.title:
            return session

        renamed = await self._caller.best_effort(
            "rename_session",
            self._platform.rename_session(session.session_id, title),
            session_id=session.session_id,
        )
        if not renamed:
            return session
        return await self._store.update_session(
            session.session_id, lambda s: s.with_title(title)
        )

    async def _display_name(self, user_id: str | None, fallback: str) -> str:
        if not user_id:
            return fallback
        user = await self._caller.attempt(
            "fetch_user", self._platform.fetch_user(user_id), user_id=user_id
        )
        return user.username if user is not None else fallback

    async def _find_decision_channel(self, session: DisputeSession) -> str | None:
        channels = await self._caller.attempt(
            "fetch_text_channels",
            self._platform.fetch_text_channels(session.origin_guild_id),
            session_id=session.session_id,
        )
        channel = pick_decision_channel(
            channels or [], session.party_a_affiliation, session.party_b_affiliation
        )
        return channel.channel_id if channel is not None else None
