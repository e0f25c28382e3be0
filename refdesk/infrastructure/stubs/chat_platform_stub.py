"""Chat platform stub for testing and local development.

In-memory implementation of ChatPlatformProtocol. It models communities
(members, users, text channels), private sessions (members, name, archive
and lock flags) and every message the bot sends.

The stub allows tests to:
1. Seed communities with members, users and channels
2. Inject failures per operation, optionally for one target only
3. Delay operations to force interleaving between concurrent tasks
4. Inspect sessions, messages, DMs, reactions and deletions afterwards

Usage:
    stub = ChatPlatformStub()
    stub.add_guild_member("dest", PlatformMember("ref-1", "alice", roles=(REF,)))
    stub.fail_operation("send_direct_message", target="user-1")
    stub.set_delay("create_private_session", 0.05)

    session_id = await stub.create_private_session("hub", "Dispute - bob")
    assert stub.sessions[session_id].title == "Dispute - bob"
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Sequence
from dataclasses import dataclass, field

from refdesk.application.ports.chat_platform import ChatPlatformProtocol
from refdesk.domain.errors import PlatformCallError, PlatformNotFoundError
from refdesk.domain.models.platform import PlatformMember, PlatformUser, TextChannel


@dataclass
class StubMessage:
    """A message the bot sent."""

    message_id: str
    channel_id: str
    content: str
    attachment_urls: tuple[str, ...] = ()
    reply_to: str | None = None


@dataclass
class StubSession:
    """A private session created through the stub."""

    session_id: str
    parent_channel_id: str
    title: str
    member_ids: set[str] = field(default_factory=set)
    archived: bool = False
    locked: bool = False


@dataclass
class _Failure:
    error: Exception
    target: str | None = None
    remaining: int | None = None


class ChatPlatformStub(ChatPlatformProtocol):
    """In-memory stub of the chat platform.

    Attributes:
        sessions: Created private sessions, by id.
        messages: Messages sent to channels and sessions, by channel id.
        direct_messages: Private messages sent, by user id.
        reactions: (channel id, message id, emoji) reactions added.
        deleted_messages: (channel id, message id) pairs deleted.
        calls: Operation names in call order.
    """

    def __init__(self) -> None:
        """Initialize an empty platform."""
        self._members: dict[str, dict[str, PlatformMember]] = {}
        self._users: dict[str, PlatformUser] = {}
        self._channels: dict[str, list[TextChannel]] = {}
        self._failures: dict[str, list[_Failure]] = {}
        self._delays: dict[str, float] = {}
        self._ids = itertools.count(1)

        self.sessions: dict[str, StubSession] = {}
        self.messages: dict[str, list[StubMessage]] = {}
        self.direct_messages: dict[str, list[str]] = {}
        self.reactions: list[tuple[str, str, str]] = []
        self.deleted_messages: list[tuple[str, str]] = []
        self.calls: list[str] = []

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_guild_member(self, guild_id: str, member: PlatformMember) -> None:
        """Add a member to a community and register their user account."""
        self._members.setdefault(guild_id, {})[member.user_id] = member
        self._users.setdefault(member.user_id, PlatformUser(member.user_id, member.username))

    def add_user(self, user: PlatformUser) -> None:
        self._users[user.user_id] = user

    def add_text_channel(self, guild_id: str, channel: TextChannel) -> None:
        self._channels.setdefault(guild_id, []).append(channel)

    def delete_session_externally(self, session_id: str) -> None:
        """Simulate a session removed on the platform behind the bot's back."""
        self.sessions.pop(session_id, None)

    # ------------------------------------------------------------------
    # Failure injection
    # ------------------------------------------------------------------

    def fail_operation(
        self,
        operation: str,
        error: Exception | None = None,
        target: str | None = None,
        times: int | None = None,
    ) -> None:
        """Make an operation fail.

        Args:
            operation: Protocol method name, e.g. "add_member".
            error: Exception to raise. Defaults to PlatformCallError.
            target: Only fail when this id is the call's target (user id,
                session id or channel id).
            times: Fail this many times, then succeed. None fails forever.
        """
        self._failures.setdefault(operation, []).append(
            _Failure(
                error=error or PlatformCallError(operation, "injected failure"),
                target=target,
                remaining=times,
            )
        )

    def set_delay(self, operation: str, seconds: float) -> None:
        """Delay every call of an operation by the given seconds."""
        self._delays[operation] = seconds

    def clear_failures(self) -> None:
        self._failures.clear()

    def call_count(self, operation: str) -> int:
        return self.calls.count(operation)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def session_texts(self, session_id: str) -> list[str]:
        """Contents of every message posted into a session."""
        return [m.content for m in self.messages.get(session_id, [])]

    def guild_member_ids(self, guild_id: str) -> set[str]:
        return set(self._members.get(guild_id, {}))

    # ------------------------------------------------------------------
    # ChatPlatformProtocol
    # ------------------------------------------------------------------

    async def create_private_session(self, parent_channel_id: str, title: str) -> str:
        await self._enter("create_private_session", parent_channel_id)
        session_id = f"session-{next(self._ids)}"
        self.sessions[session_id] = StubSession(session_id, parent_channel_id, title)
        return session_id

    async def send_message(
        self,
        channel_id: str,
        content: str,
        attachment_urls: Sequence[str] = (),
    ) -> str:
        await self._enter("send_message", channel_id)
        self._require_channel(channel_id)
        message = StubMessage(
            message_id=f"msg-{next(self._ids)}",
            channel_id=channel_id,
            content=content,
            attachment_urls=tuple(attachment_urls),
        )
        self.messages.setdefault(channel_id, []).append(message)
        return message.message_id

    async def reply_to_message(self, channel_id: str, message_id: str, content: str) -> str:
        await self._enter("reply_to_message", channel_id)
        message = StubMessage(
            message_id=f"msg-{next(self._ids)}",
            channel_id=channel_id,
            content=content,
            reply_to=message_id,
        )
        self.messages.setdefault(channel_id, []).append(message)
        return message.message_id

    async def send_direct_message(self, user_id: str, content: str) -> str:
        await self._enter("send_direct_message", user_id)
        self.direct_messages.setdefault(user_id, []).append(content)
        return f"dm-{next(self._ids)}"

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        await self._enter("add_reaction", message_id)
        self.reactions.append((channel_id, message_id, emoji))

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        await self._enter("delete_message", message_id)
        self.deleted_messages.append((channel_id, message_id))

    async def fetch_members(self, guild_id: str) -> list[PlatformMember]:
        await self._enter("fetch_members", guild_id)
        return list(self._members.get(guild_id, {}).values())

    async def fetch_member(self, guild_id: str, user_id: str) -> PlatformMember | None:
        await self._enter("fetch_member", user_id)
        return self._members.get(guild_id, {}).get(user_id)

    async def fetch_user(self, user_id: str) -> PlatformUser:
        await self._enter("fetch_user", user_id)
        user = self._users.get(user_id)
        if user is None:
            raise PlatformNotFoundError("fetch_user", f"unknown user {user_id}")
        return user

    async def fetch_text_channels(self, guild_id: str) -> list[TextChannel]:
        await self._enter("fetch_text_channels", guild_id)
        return list(self._channels.get(guild_id, []))

    async def fetch_session_member_ids(self, session_id: str) -> set[str]:
        await self._enter("fetch_session_member_ids", session_id)
        return set(self._session(session_id, "fetch_session_member_ids").member_ids)

    async def add_member(self, session_id: str, user_id: str) -> None:
        await self._enter("add_member", user_id)
        self._session(session_id, "add_member").member_ids.add(user_id)

    async def remove_member(self, session_id: str, user_id: str) -> None:
        await self._enter("remove_member", user_id)
        self._session(session_id, "remove_member").member_ids.discard(user_id)

    async def rename_session(self, session_id: str, title: str) -> None:
        await self._enter("rename_session", session_id)
        self._session(session_id, "rename_session").title = title

    async def set_archived(self, session_id: str, archived: bool) -> None:
        await self._enter("set_archived", session_id)
        self._session(session_id, "set_archived").archived = archived

    async def set_locked(self, session_id: str, locked: bool) -> None:
        await self._enter("set_locked", session_id)
        self._session(session_id, "set_locked").locked = locked

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _enter(self, operation: str, target: str) -> None:
        """Record the call, apply any delay and raise any injected failure."""
        self.calls.append(operation)
        delay = self._delays.get(operation)
        if delay:
            await asyncio.sleep(delay)

        for failure in self._failures.get(operation, []):
            if failure.target is not None and failure.target != target:
                continue
            if failure.remaining is not None:
                if failure.remaining <= 0:
                    continue
                failure.remaining -= 1
            raise failure.error

    def _session(self, session_id: str, operation: str) -> StubSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise PlatformNotFoundError(operation, f"unknown session {session_id}")
        return session

    def _require_channel(self, channel_id: str) -> None:
        # Session ids are the only ids the stub can tell were removed
        if channel_id.startswith("session-") and channel_id not in self.sessions:
            raise PlatformNotFoundError("send_message", f"unknown channel {channel_id}")
