"""Roster synchronizer.

Reconciles a session's private membership with the current rules. The
roster lives only on the platform: every operation re-fetches it and
applies add/remove deltas, so stale membership is corrected on the next
sync rather than treated as an error.

Developer Golden Rules:
1. Each operation is idempotent and reports what it changed
2. One member's add/remove failure is logged and counted, never fatal
3. Parties (and the raiser) never sit in the adjudication-only space
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from structlog import get_logger

from refdesk.application.ports.results import RosterOperation, RosterSyncResult
from refdesk.domain.services.conflict_matcher import conflicting_labels

if TYPE_CHECKING:
    from refdesk.application.ports.chat_platform import ChatPlatformProtocol
    from refdesk.application.services.platform_calls import PlatformCaller
    from refdesk.domain.models.dispute_session import DisputeSession
    from refdesk.domain.models.platform import PlatformMember

logger = get_logger(__name__)


class RosterSynchronizer:
    """Applies roster deltas to a session's private membership.

    Example:
        >>> result = await roster.add_all_eligible(session)
        >>> result = await roster.remove_conflicted(session, session.affiliation_labels)
        >>> result = await roster.purge_parties(session)
    """

    def __init__(
        self,
        platform: ChatPlatformProtocol,
        caller: PlatformCaller,
        destination_guild_id: str,
        adjudicator_role_ids: Iterable[str],
        post_summaries: bool = True,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            platform: Chat platform client.
            caller: Bounded platform call runner.
            destination_guild_id: Community whose members adjudicate.
            adjudicator_role_ids: Roles that make a member eligible.
            post_summaries: Whether to post a one-line summary into the
                session after each operation.
        """
        self._platform = platform
        self._caller = caller
        self._destination_guild_id = destination_guild_id
        self._adjudicator_roles = frozenset(adjudicator_role_ids)
        self._post_summaries = post_summaries

    async def add_all_eligible(self, session: DisputeSession) -> RosterSyncResult:
        """Add every adjudicator of the destination community.

        Members already in the session and involved users are skipped.
        """
        result = await self._add_matching(
            session,
            RosterOperation.ADD_ALL_ELIGIBLE,
            self._adjudicator_roles,
        )
        await self._summarize(
            session, f"👥 Added {result.added_count} referees to this dispute thread."
        )
        return result

    async def add_by_capability(
        self, session: DisputeSession, role_id: str
    ) -> RosterSyncResult:
        """Add only members holding one named role (narrow re-ping flow)."""
        result = await self._add_matching(
            session, RosterOperation.ADD_BY_CAPABILITY, frozenset({role_id})
        )
        if result.added_count:
            text = (
                f"👥 Added {result.added_count} member(s) with role <@&{role_id}> "
                "to this dispute thread."
            )
        else:
            text = f"ℹ️ No additional members with role <@&{role_id}> were added."
        await self._summarize(session, text)
        return result

    async def remove_conflicted(
        self, session: DisputeSession, affiliation_labels: Iterable[str | None]
    ) -> RosterSyncResult:
        """Remove current members sharing an affiliation with a party.

        Each member's full role set is fetched; members whose labels match
        a party label exactly or by bracketed short code are removed.
        Re-running with unchanged inputs removes nobody.

        Args:
            session: Session to clean.
            affiliation_labels: Party affiliation labels.
        """
        labels = [label for label in affiliation_labels if label]
        log = logger.bind(session_id=session.session_id, labels=labels)
        if not labels:
            log.info("conflict_removal_skipped_no_labels")
            result = RosterSyncResult(session.session_id, RosterOperation.REMOVE_CONFLICTED)
            await self._summarize(session, "✅ No conflicted referees found.")
            return result

        current = await self._current_member_ids(session)
        removed: list[str] = []
        removed_names: list[str] = []
        failed: list[str] = []

        for user_id in sorted(current):
            member = await self._caller.attempt(
                "fetch_member",
                self._platform.fetch_member(self._destination_guild_id, user_id),
                session_id=session.session_id,
                user_id=user_id,
            )
            if member is None:
                continue
            matched = conflicting_labels(labels, member.role_names)
            if not matched:
                continue
            ok = await self._caller.best_effort(
                "remove_member",
                self._platform.remove_member(session.session_id, user_id),
                session_id=session.session_id,
                user_id=user_id,
            )
            if ok:
                removed.append(user_id)
                removed_names.append(member.username or user_id)
                log.info("conflicted_member_removed", user_id=user_id, matched=matched)
            else:
                failed.append(user_id)

        if removed_names:
            text = f"🚫 Auto removed conflicted referees: {', '.join(removed_names)}."
        else:
            text = "✅ No conflicted referees found."
        await self._summarize(session, text)

        return RosterSyncResult(
            session_id=session.session_id,
            operation=RosterOperation.REMOVE_CONFLICTED,
            removed=tuple(removed),
            removed_names=tuple(removed_names),
            failed=tuple(failed),
        )

    async def purge_parties(self, session: DisputeSession) -> RosterSyncResult:
        """Remove involved users (raiser and parties) if they are present."""
        current = await self._current_member_ids(session)
        removed: list[str] = []
        failed: list[str] = []

        for user_id in sorted(session.involved_user_ids & current):
            ok = await self._caller.best_effort(
                "remove_member",
                self._platform.remove_member(session.session_id, user_id),
                session_id=session.session_id,
                user_id=user_id,
            )
            (removed if ok else failed).append(user_id)

        if removed:
            logger.info(
                "parties_purged", session_id=session.session_id, user_ids=removed
            )
        return RosterSyncResult(
            session_id=session.session_id,
            operation=RosterOperation.PURGE_PARTIES,
            removed=tuple(removed),
            failed=tuple(failed),
        )

    async def _add_matching(
        self,
        session: DisputeSession,
        operation: RosterOperation,
        role_ids: frozenset[str],
    ) -> RosterSyncResult:
        log = logger.bind(session_id=session.session_id, operation=operation.value)
        members: list[PlatformMember] = await self._caller.call(
            "fetch_members", self._platform.fetch_members(self._destination_guild_id)
        )
        current = await self._current_member_ids(session)
        excluded = session.involved_user_ids

        added: list[str] = []
        failed: list[str] = []
        for member in members:
            if member.is_bot or not member.has_any_role(role_ids):
                continue
            if member.user_id in excluded or member.user_id in current:
                continue
            ok = await self._caller.best_effort(
                "add_member",
                self._platform.add_member(session.session_id, member.user_id),
                session_id=session.session_id,
                user_id=member.user_id,
            )
            (added if ok else failed).append(member.user_id)

        log.info("roster_members_added", added=len(added), failed=len(failed))
        return RosterSyncResult(
            session_id=session.session_id,
            operation=operation,
            added=tuple(added),
            failed=tuple(failed),
        )

    async def _current_member_ids(self, session: DisputeSession) -> set[str]:
        member_ids = await self._caller.attempt(
            "fetch_session_member_ids",
            self._platform.fetch_session_member_ids(session.session_id),
            session_id=session.session_id,
        )
        return set(member_ids or ())

    async def _summarize(self, session: DisputeSession, text: str) -> None:
        if not self._post_summaries:
            return
        await self._caller.best_effort(
            "send_message",
            self._platform.send_message(session.session_id, text),
            session_id=session.session_id,
        )
