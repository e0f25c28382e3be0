"""Trigger source API request/response models.

A gateway relay normalizes platform events into these shapes and posts
them to the event routes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from refdesk.domain.models.platform import InboundMessage, PlatformRole


class RoleModel(BaseModel):
    """A role mentioned by a message."""

    role_id: str = Field(..., description="Platform role id")
    name: str = Field(..., description="Role name, e.g. 'Valor [VA]'")


class InboundMessageRequest(BaseModel):
    """A message event, from a community channel or a private channel.

    Attributes:
        message_id: Platform message id.
        channel_id: Channel or thread the message was posted in.
        author_id: Author's user id.
        author_name: Author's username.
        guild_id: Community id; omitted for private messages.
    """

    message_id: str = Field(..., description="Platform message id")
    channel_id: str = Field(..., description="Channel or thread id")
    author_id: str = Field(..., description="Author's user id")
    author_name: str = Field(..., description="Author's username")
    author_display_name: str | None = Field(
        default=None, description="Author's global display name"
    )
    author_is_bot: bool = Field(default=False, description="Author is an automated account")
    guild_id: str | None = Field(
        default=None, description="Community id, omitted for private messages"
    )
    guild_name: str | None = Field(default=None, description="Community name")
    parent_channel_id: str | None = Field(
        default=None, description="Parent channel when channel_id is a thread"
    )
    is_thread: bool = Field(default=False, description="channel_id is a thread")
    content: str = Field(default="", description="Message text")
    mentioned_roles: list[RoleModel] = Field(default_factory=list)
    mentioned_user_ids: list[str] = Field(default_factory=list)
    attachment_urls: list[str] = Field(default_factory=list)
    reaction_emojis: list[str] = Field(
        default_factory=list, description="Reactions already on the message"
    )
    url: str | None = Field(default=None, description="Jump link to the message")

    def to_domain(self) -> InboundMessage:
        return InboundMessage(
            message_id=self.message_id,
            channel_id=self.channel_id,
            author_id=self.author_id,
            author_name=self.author_name,
            author_display_name=self.author_display_name,
            author_is_bot=self.author_is_bot,
            guild_id=self.guild_id,
            guild_name=self.guild_name,
            parent_channel_id=self.parent_channel_id,
            is_thread=self.is_thread,
            content=self.content,
            mentioned_roles=tuple(
                PlatformRole(role_id=r.role_id, name=r.name) for r in self.mentioned_roles
            ),
            mentioned_user_ids=tuple(self.mentioned_user_ids),
            attachment_urls=tuple(self.attachment_urls),
            reaction_emojis=tuple(self.reaction_emojis),
            url=self.url,
        )


class MessageEventResponse(BaseModel):
    """Acknowledgement of a dispatched message event.

    Attributes:
        message_id: The event's message id.
        accepted: Always true; the event was handed to a task.
        outcome: What the handler did, only when the caller waited.
        session_id: Session created, reused or forwarded to, if any.
    """

    message_id: str
    accepted: bool = True
    outcome: str | None = None
    session_id: str | None = None


class RouteChoiceRequest(BaseModel):
    """A user's answer to a disambiguation prompt."""

    user_id: str = Field(..., description="User who answered")
    session_id: str | None = Field(
        default=None, description="Selected session; omitted when nothing was picked"
    )


class RouteChoiceResponse(BaseModel):
    """Result of committing a disambiguation answer.

    Attributes:
        action: accepted, rejected or no_answer.
        user_id: User who answered.
        session_id: The selected session, if any.
        message: Reply to show the user.
    """

    action: str
    user_id: str
    session_id: str | None = None
    message: str
