"""Chat platform port.

Abstract contract for the remote chat platform. Every call is fallible,
may be slow, may be retried by the caller, and is never transactional
with the session store.

Implementations raise:
- PlatformNotFoundError when the target object does not exist.
- PlatformCallError for any other rejection.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from refdesk.domain.models.platform import (
    PlatformMember,
    PlatformUser,
    RouteChoiceOption,
    TextChannel,
)


class ChatPlatformProtocol(Protocol):
    """Protocol for chat platform operations."""

    async def create_private_session(self, parent_channel_id: str, title: str) -> str:
        """Create a private thread under a parent channel.

        Returns:
            The new session handle (thread id).
        """
        ...

    async def send_message(
        self,
        channel_id: str,
        content: str,
        attachment_urls: Sequence[str] = (),
    ) -> str:
        """Post a message to a channel or thread.

        Returns:
            The new message id.
        """
        ...

    async def reply_to_message(self, channel_id: str, message_id: str, content: str) -> str:
        """Reply to a specific message without pinging anyone."""
        ...

    async def send_direct_message(self, user_id: str, content: str) -> str:
        """Send a private message to a user."""
        ...

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        """Add a reaction to a message as the bot."""
        ...

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        """Delete a message."""
        ...

    async def fetch_members(self, guild_id: str) -> list[PlatformMember]:
        """List every member of a community with their roles."""
        ...

    async def fetch_member(self, guild_id: str, user_id: str) -> PlatformMember | None:
        """Fetch one community member, or None if not a member."""
        ...

    async def fetch_user(self, user_id: str) -> PlatformUser:
        """Fetch a user account."""
        ...

    async def fetch_text_channels(self, guild_id: str) -> list[TextChannel]:
        """List the plain text channels of a community."""
        ...

    async def fetch_session_member_ids(self, session_id: str) -> set[str]:
        """List the user ids currently in a private session."""
        ...

    async def add_member(self, session_id: str, user_id: str) -> None:
        """Add a user to a private session."""
        ...

    async def remove_member(self, session_id: str, user_id: str) -> None:
        """Remove a user from a private session."""
        ...

    async def rename_session(self, session_id: str, title: str) -> None:
        """Change a private session's display name."""
        ...

    async def set_archived(self, session_id: str, archived: bool) -> None:
        """Archive or unarchive a private session."""
        ...

    async def set_locked(self, session_id: str, locked: bool) -> None:
        """Lock or unlock a private session."""
        ...


class DisambiguationPromptProtocol(Protocol):
    """Protocol for asking a user which session a private message is about.

    The chosen value comes back later as a separate event; presenting the
    prompt does not wait for an answer.
    """

    async def present_choices(
        self,
        user_id: str,
        prompt: str,
        choices: Sequence[RouteChoiceOption],
    ) -> bool:
        """Present a bounded list of labelled choices to a user.

        Returns:
            True if the prompt was delivered, False otherwise.
        """
        ...
