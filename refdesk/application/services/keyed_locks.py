"""Per-key asyncio locks.

Serializes work on one logical key (an origin request, a session) while
letting unrelated keys proceed independently. A lock is held across slow
external calls, so a second task for the same key waits for the first to
finish and then observes its result.

Usage:
    locks = KeyedLockRegistry()
    async with locks.hold(f"origin:{origin_key}"):
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class KeyedLockRegistry:
    """Registry of asyncio locks keyed by string.

    Entries are reference counted and dropped once no task holds or waits
    on them, so the registry does not grow with every session ever seen.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block.

        Args:
            key: Logical key, e.g. "origin:thread:123" or "session:456".
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = _LockEntry()
            self._entries[key] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def is_held(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
