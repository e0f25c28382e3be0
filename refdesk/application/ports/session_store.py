"""Session store port.

The session store exclusively owns dispute session records and their
secondary indices:
- origin key -> session id
- user -> open session ids
- user -> selected session for private message routing

Only compound, invariant-preserving operations are exposed. Routing
invariant: selected_session(u) is either None or an element of
open_sessions(u), after every operation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from refdesk.domain.models.dispute_session import DisputeSession


@dataclass(frozen=True)
class RouteLookup:
    """Snapshot of a user's routing state taken in one atomic step.

    Attributes:
        user_id: The user the lookup was made for.
        candidates: The user's open session ids, oldest first.
        target: The resolved session, or None when there is no session or
            an explicit choice is required.
    """

    user_id: str
    candidates: tuple[str, ...]
    target: str | None

    @property
    def has_sessions(self) -> bool:
        return bool(self.candidates)

    @property
    def needs_choice(self) -> bool:
        return self.target is None and len(self.candidates) >= 2


class SessionStoreProtocol(Protocol):
    """Protocol for the authoritative dispute session table."""

    async def register_session(self, session: DisputeSession) -> None:
        """Register a new open session, its origin key and its raiser.

        Raises:
            ValueError: If the session id was already registered or closed.
        """
        ...

    async def get_session(self, session_id: str) -> DisputeSession | None:
        """Get a session by id, open or closing."""
        ...

    async def require_open(self, session_id: str) -> DisputeSession:
        """Get an open session.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionNotOpenError: If the session was closed.
        """
        ...

    async def find_by_origin(self, origin_key: str) -> DisputeSession | None:
        """Find the open session created for an origin key."""
        ...

    async def mark_trigger(self, channel_id: str, message_id: str) -> bool:
        """Record that a trigger message was handled.

        Returns:
            True if newly marked, False if it was already marked.
        """
        ...

    async def update_session(
        self,
        session_id: str,
        change: Callable[[DisputeSession], DisputeSession],
    ) -> DisputeSession:
        """Atomically replace an open session with change(session)."""
        ...

    async def assign_parties(
        self, session_id: str, party_a_id: str, party_b_id: str
    ) -> DisputeSession:
        """Set both parties and re-index every user involved in the session."""
        ...

    async def add_participant(self, user_id: str, session_id: str) -> None:
        """Add an open session to a user's routing set (auto-selects)."""
        ...

    async def remove_participant(self, user_id: str, session_id: str) -> None:
        """Remove a session from a user's routing set (clears selection)."""
        ...

    async def open_sessions(self, user_id: str) -> frozenset[str]:
        """Get the open session ids indexed for a user."""
        ...

    async def selected_session(self, user_id: str) -> str | None:
        """Get the user's routing selection, if any."""
        ...

    async def select_session(self, user_id: str, session_id: str) -> bool:
        """Commit a routing selection if it is still in the user's set."""
        ...

    async def lookup_route(self, user_id: str) -> RouteLookup:
        """Resolve the routing target for a user in one atomic step."""
        ...

    async def unregister_routing(self, session_id: str) -> frozenset[str]:
        """Remove a session from every user's routing set.

        Returns:
            The users whose routing sets changed.
        """
        ...

    async def purge_session(self, session_id: str) -> DisputeSession:
        """Mark a session closed and drop it and its origin key."""
        ...

    async def list_open_sessions(self) -> list[DisputeSession]:
        """List all open sessions."""
        ...
