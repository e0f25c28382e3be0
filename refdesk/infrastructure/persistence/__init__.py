"""Process-lifetime persistence for refdesk."""

from refdesk.infrastructure.persistence.in_memory_session_store import (
    InMemorySessionStore,
)

__all__: list[str] = ["InMemorySessionStore"]
