"""In-memory session store.

Process-lifetime store for dispute sessions and their routing indices.
State is lost on restart; the external private sessions survive but their
bookkeeping does not.

Developer Golden Rules:
1. Every read-modify-write on an index runs under the store lock
2. selected_session(u) is always None or an element of open_sessions(u)
3. An index entry pointing at an unknown session is a defect: log it and
   remove the entry, never surface it to a user
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from structlog import get_logger

from refdesk.application.ports.session_store import RouteLookup, SessionStoreProtocol
from refdesk.domain.errors import (
    RoutingIndexDefectError,
    SessionNotFoundError,
    SessionNotOpenError,
)
from refdesk.domain.models.dispute_session import DisputeSession

logger = get_logger(__name__)

DEFAULT_MAX_REMEMBERED = 10_000


class InMemorySessionStore(SessionStoreProtocol):
    """Authoritative in-memory table of dispute sessions.

    Thread-safety: Uses an asyncio Lock for every compound operation. No
    external call is ever awaited while the lock is held.

    Attributes:
        _sessions: session id -> session record.
        _origin_index: origin key -> session id.
        _open_by_user: user id -> open session ids (insertion ordered).
        _selected: user id -> selected session id.
        _chosen: users whose selection came from an explicit choice. An
            automatic selection only stands while it is the user's sole
            open session.
        _marked_triggers: (channel id, message id) of handled triggers,
            oldest first.
        _closed_ids: ids of closed sessions, refused for re-registration,
            oldest first.

    Both tombstone tables keep the newest max_remembered entries.
    Redeliveries arrive within seconds and the platform also carries the
    acknowledgement reaction, so a forgotten mark is never the only guard.
    A forgotten closed id reads as SessionNotFoundError, which is still a
    SessionNotOpenError.
    """

    def __init__(self, max_remembered: int = DEFAULT_MAX_REMEMBERED) -> None:
        """Initialize an empty store.

        Args:
            max_remembered: Cap on remembered trigger marks and closed ids.
        """
        if max_remembered < 1:
            raise ValueError("max_remembered must be at least 1")
        self._max_remembered = max_remembered
        self._sessions: dict[str, DisputeSession] = {}
        self._origin_index: dict[str, str] = {}
        self._open_by_user: dict[str, dict[str, None]] = {}
        self._selected: dict[str, str] = {}
        self._chosen: set[str] = set()
        self._marked_triggers: dict[tuple[str, str], None] = {}
        self._closed_ids: dict[str, None] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Session records
    # ------------------------------------------------------------------

    async def register_session(self, session: DisputeSession) -> None:
        """Register a new open session, its origin key and its raiser.

        Args:
            session: The freshly created session.

        Raises:
            ValueError: If the session id is already known or was closed.
        """
        async with self._lock:
            if session.session_id in self._sessions or session.session_id in self._closed_ids:
                raise ValueError(f"Session {session.session_id} is already registered")
            if not session.is_open:
                raise ValueError(f"Session {session.session_id} is not open")

            self._sessions[session.session_id] = session
            self._origin_index[session.origin_key] = session.session_id
            self._add_participant_locked(session.raiser_id, session.session_id)

        logger.info(
            "session_registered",
            session_id=session.session_id,
            origin_key=session.origin_key,
            raiser_id=session.raiser_id,
        )

    async def get_session(self, session_id: str) -> DisputeSession | None:
        async with self._lock:
            return self._sessions.get(session_id)

    async def require_open(self, session_id: str) -> DisputeSession:
        """Get an open session.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionNotOpenError: If the session was closed.
        """
        async with self._lock:
            return self._require_open_locked(session_id)

    async def find_by_origin(self, origin_key: str) -> DisputeSession | None:
        async with self._lock:
            session_id = self._origin_index.get(origin_key)
            if session_id is None:
                return None
            session = self._sessions.get(session_id)
            if session is None or not session.is_open:
                self._origin_index.pop(origin_key, None)
                return None
            return session

    async def mark_trigger(self, channel_id: str, message_id: str) -> bool:
        """Record a handled trigger; False if it was already recorded."""
        key = (channel_id, message_id)
        async with self._lock:
            if key in self._marked_triggers:
                return False
            self._remember_locked(self._marked_triggers, key)
            return True

    async def update_session(
        self,
        session_id: str,
        change: Callable[[DisputeSession], DisputeSession],
    ) -> DisputeSession:
        """Atomically replace an open session with change(session).

        Args:
            session_id: Session to update.
            change: Pure function producing the new record.

        Returns:
            The stored updated session.
        """
        async with self._lock:
            current = self._require_open_locked(session_id)
            updated = change(current)
            if updated.session_id != current.session_id:
                raise ValueError("Session id is immutable")
            self._sessions[session_id] = updated
            return updated

    async def assign_parties(
        self, session_id: str, party_a_id: str, party_b_id: str
    ) -> DisputeSession:
        """Set both parties and re-index every user involved in the session.

        Users that stop being involved (a corrected party) lose the session
        from their routing set; new parties gain it.
        """
        async with self._lock:
            current = self._require_open_locked(session_id)
            updated = current.with_parties(party_a_id, party_b_id)
            self._sessions[session_id] = updated

            for user_id in current.involved_user_ids - updated.involved_user_ids:
                self._remove_participant_locked(user_id, session_id)
            for user_id in updated.involved_user_ids:
                self._add_participant_locked(user_id, session_id)
            return updated

    async def purge_session(self, session_id: str) -> DisputeSession:
        """Mark a session closed and drop it and its origin key.

        Returns:
            The closed session record.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionNotOpenError: If the session was already purged.
        """
        async with self._lock:
            current = self._require_open_locked(session_id)
            del self._sessions[session_id]
            if self._origin_index.get(current.origin_key) == session_id:
                del self._origin_index[current.origin_key]
            self._remember_locked(self._closed_ids, session_id)
            # Close already unregistered routing; sweep leftovers anyway
            for user_id in [u for u, ids in self._open_by_user.items() if session_id in ids]:
                self._remove_participant_locked(user_id, session_id)

        logger.info("session_purged", session_id=session_id)
        return current.with_closed()

    async def list_open_sessions(self) -> list[DisputeSession]:
        async with self._lock:
            return [s for s in self._sessions.values() if s.is_open]

    # ------------------------------------------------------------------
    # Routing index
    # ------------------------------------------------------------------

    async def add_participant(self, user_id: str, session_id: str) -> None:
        async with self._lock:
            if session_id not in self._sessions:
                logger.warning(
                    "routing_add_unknown_session", user_id=user_id, session_id=session_id
                )
                return
            self._add_participant_locked(user_id, session_id)

    async def remove_participant(self, user_id: str, session_id: str) -> None:
        async with self._lock:
            self._remove_participant_locked(user_id, session_id)

    async def open_sessions(self, user_id: str) -> frozenset[str]:
        async with self._lock:
            return frozenset(self._healed_candidates_locked(user_id))

    async def selected_session(self, user_id: str) -> str | None:
        async with self._lock:
            self._healed_candidates_locked(user_id)
            return self._selected.get(user_id)

    async def select_session(self, user_id: str, session_id: str) -> bool:
        """Commit a routing selection if it is still in the user's set.

        A session closed between the offer and the answer is rejected.

        Returns:
            True if committed, False if the session is no longer available.
        """
        async with self._lock:
            if session_id not in self._healed_candidates_locked(user_id):
                return False
            self._selected[user_id] = session_id
            self._chosen.add(user_id)
            return True

    async def lookup_route(self, user_id: str) -> RouteLookup:
        """Resolve the routing target for a user in one atomic step.

        - No open sessions: no target.
        - One open session: that session, whatever the selection says.
        - Several: the explicit selection if still valid, else no target.
        """
        async with self._lock:
            candidates = tuple(self._healed_candidates_locked(user_id))
            if len(candidates) == 1:
                target: str | None = candidates[0]
            else:
                target = self._selected.get(user_id)
            return RouteLookup(user_id=user_id, candidates=candidates, target=target)

    async def unregister_routing(self, session_id: str) -> frozenset[str]:
        """Remove a session from every user's routing set."""
        async with self._lock:
            affected = [u for u, ids in self._open_by_user.items() if session_id in ids]
            for user_id in affected:
                self._remove_participant_locked(user_id, session_id)
        if affected:
            logger.info(
                "session_unrouted", session_id=session_id, user_ids=sorted(affected)
            )
        return frozenset(affected)

    # ------------------------------------------------------------------
    # Lock-held helpers
    # ------------------------------------------------------------------

    def _require_open_locked(self, session_id: str) -> DisputeSession:
        session = self._sessions.get(session_id)
        if session is not None and session.is_open:
            return session
        if session_id in self._closed_ids or session is not None:
            raise SessionNotOpenError(session_id)
        raise SessionNotFoundError(session_id)

    def _remember_locked(self, table: dict[Any, None], key: Any) -> None:
        table[key] = None
        while len(table) > self._max_remembered:
            del table[next(iter(table))]

    def _add_participant_locked(self, user_id: str, session_id: str) -> None:
        open_ids = self._open_by_user.setdefault(user_id, {})
        if session_id in open_ids:
            return
        was_empty = not open_ids
        open_ids[session_id] = None
        if was_empty:
            self._selected[user_id] = session_id
            self._chosen.discard(user_id)
        elif user_id not in self._chosen:
            # Auto-selection lapses once there is more than one candidate
            self._selected.pop(user_id, None)

    def _remove_participant_locked(self, user_id: str, session_id: str) -> None:
        open_ids = self._open_by_user.get(user_id)
        if open_ids is None:
            return
        open_ids.pop(session_id, None)
        if not open_ids:
            del self._open_by_user[user_id]
        if self._selected.get(user_id) == session_id:
            del self._selected[user_id]
            self._chosen.discard(user_id)

    def _healed_candidates_locked(self, user_id: str) -> list[str]:
        """Return a user's open session ids, dropping dangling entries."""
        open_ids = self._open_by_user.get(user_id)
        if not open_ids:
            self._selected.pop(user_id, None)
            self._chosen.discard(user_id)
            return []

        dangling = [sid for sid in open_ids if sid not in self._sessions]
        for session_id in dangling:
            defect = RoutingIndexDefectError(user_id, session_id)
            logger.error("routing_index_defect", error=str(defect))
            self._remove_participant_locked(user_id, session_id)

        selected = self._selected.get(user_id)
        if selected is not None and selected not in self._open_by_user.get(user_id, {}):
            del self._selected[user_id]
            self._chosen.discard(user_id)

        return list(self._open_by_user.get(user_id, {}))

    # ------------------------------------------------------------------
    # Test support
    # ------------------------------------------------------------------

    def check_routing_invariant(self) -> bool:
        """Check selected ⊆ open for every user (for testing)."""
        return all(
            session_id in self._open_by_user.get(user_id, {})
            for user_id, session_id in self._selected.items()
        )

    def inject_dangling_route(self, user_id: str, session_id: str) -> None:
        """Plant an index entry with no session behind it (for testing)."""
        self._open_by_user.setdefault(user_id, {})[session_id] = None
        self._selected[user_id] = session_id
