"""Chat platform value objects.

Plain snapshots of what the platform reports. None of these are cached as
ground truth: roster membership in particular is always re-fetched.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PlatformRole:
    """A community role (capability or affiliation label)."""

    role_id: str
    name: str


@dataclass(frozen=True)
class PlatformMember:
    """A community member together with the roles they hold.

    Attributes:
        user_id: Platform user id.
        username: Account name, used in roster summaries.
        roles: Roles held in the community.
        is_bot: Whether the account is an automated one.
    """

    user_id: str
    username: str
    roles: tuple[PlatformRole, ...] = ()
    is_bot: bool = False

    @property
    def role_ids(self) -> frozenset[str]:
        return frozenset(role.role_id for role in self.roles)

    @property
    def role_names(self) -> tuple[str, ...]:
        return tuple(role.name for role in self.roles)

    def has_any_role(self, role_ids: frozenset[str] | set[str]) -> bool:
        return not self.role_ids.isdisjoint(role_ids)


@dataclass(frozen=True)
class PlatformUser:
    """A platform account outside of any community context."""

    user_id: str
    username: str
    global_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.global_name or self.username


@dataclass(frozen=True)
class TextChannel:
    """A plain text channel in a community."""

    channel_id: str
    name: str


@dataclass(frozen=True)
class InboundMessage:
    """A message event delivered by the trigger source.

    Covers both community messages (guild_id set) and private messages
    to the bot (guild_id None).

    Attributes:
        message_id: Platform message id.
        channel_id: Channel or thread the message was posted in.
        author_id: Author's user id.
        author_name: Author's username.
        author_display_name: Author's global display name, if any.
        author_is_bot: Whether the author is an automated account.
        guild_id: Community id, None for private messages.
        guild_name: Community name, when known.
        parent_channel_id: Parent channel when channel_id is a thread.
        is_thread: Whether channel_id is a thread-like container.
        content: Message text.
        mentioned_roles: Roles mentioned by the message.
        mentioned_user_ids: Users mentioned by the message.
        attachment_urls: URLs of attached files.
        reaction_emojis: Reactions already present on the message.
        url: Jump link to the message.
    """

    message_id: str
    channel_id: str
    author_id: str
    author_name: str
    author_display_name: str | None = None
    author_is_bot: bool = False
    guild_id: str | None = None
    guild_name: str | None = None
    parent_channel_id: str | None = None
    is_thread: bool = False
    content: str = ""
    mentioned_roles: tuple[PlatformRole, ...] = ()
    mentioned_user_ids: tuple[str, ...] = ()
    attachment_urls: tuple[str, ...] = ()
    reaction_emojis: tuple[str, ...] = field(default_factory=tuple)
    url: str | None = None

    @property
    def is_private(self) -> bool:
        return self.guild_id is None

    @property
    def author_label(self) -> str:
        return self.author_display_name or self.author_name

    def mentions_role(self, role_id: str) -> bool:
        return any(role.role_id == role_id for role in self.mentioned_roles) or (
            f"<@&{role_id}>" in self.content
        )

    def mentions_user(self, user_id: str) -> bool:
        return user_id in self.mentioned_user_ids or f"<@{user_id}>" in self.content


@dataclass(frozen=True)
class RouteChoiceOption:
    """One labelled option in a disambiguation prompt."""

    value: str
    label: str
