"""Discord REST adapter.

Implements the chat platform and disambiguation ports over the Discord
REST API (v10) with httpx.

Error mapping:
- 404 -> PlatformNotFoundError
- 429 -> wait retry_after and retry, up to max_rate_limit_retries
- any other 4xx/5xx or transport error -> PlatformCallError

Private sessions are private threads under the hub channel. Roster
membership is read from the thread member list on every call.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote, urlsplit

import httpx
import structlog

from refdesk.application.ports.chat_platform import (
    ChatPlatformProtocol,
    DisambiguationPromptProtocol,
)
from refdesk.domain.errors import PlatformCallError, PlatformNotFoundError
from refdesk.domain.models.platform import (
    PlatformMember,
    PlatformRole,
    PlatformUser,
    RouteChoiceOption,
    TextChannel,
)

log = structlog.get_logger()

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
ROUTE_SELECT_CUSTOM_ID = "dm-route-select"
ROUTE_SELECT_PLACEHOLDER = "Select which dispute this DM relates to"

# Discord channel and component type codes
GUILD_TEXT_CHANNEL = 0
PRIVATE_THREAD = 12
ACTION_ROW = 1
STRING_SELECT = 3

ONE_WEEK_MINUTES = 10080
MEMBER_PAGE_SIZE = 1000
MAX_NAME_LENGTH = 100
MAX_SELECT_OPTIONS = 25

# Attachments are only fetched from Discord's own CDN, without credentials
ATTACHMENT_HOSTS = frozenset({"cdn.discordapp.com", "media.discordapp.net"})


class DiscordRestClient(ChatPlatformProtocol, DisambiguationPromptProtocol):
    """Discord REST client for the dispute relay.

    Usage:
        client = DiscordRestClient(token=config.discord_token)
        thread_id = await client.create_private_session(hub_id, "Dispute - bob")
        await client.aclose()

    Attributes:
        _role_names: Role id -> name, cached per guild.
        _dm_channels: User id -> DM channel id.
        _downloads: Credential-free client for attachment downloads.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float = 10.0,
        max_rate_limit_retries: int = 3,
        max_retry_after_seconds: float = 10.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: Bot token.
            base_url: REST base URL.
            transport: Custom httpx transport (tests use MockTransport).
            timeout_seconds: Per-request HTTP timeout.
            max_rate_limit_retries: Retries after a 429 before giving up.
            max_retry_after_seconds: Upper bound on one rate-limit wait.
        """
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bot {token}",
                "User-Agent": "DiscordBot (refdesk, 0.1.0)",
            },
            timeout=timeout_seconds,
            transport=transport,
        )
        self._downloads = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)
        self._max_retries = max_rate_limit_retries
        self._max_retry_after = max_retry_after_seconds
        self._role_names: dict[str, dict[str, str]] = {}
        self._dm_channels: dict[str, str] = {}

    async def aclose(self) -> None:
        await self._client.aclose()
        await self._downloads.aclose()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_private_session(self, parent_channel_id: str, title: str) -> str:
        data = await self._request(
            "create_private_session",
            "POST",
            f"/channels/{parent_channel_id}/threads",
            json={
                "name": title[:MAX_NAME_LENGTH],
                "type": PRIVATE_THREAD,
                "auto_archive_duration": ONE_WEEK_MINUTES,
                "invitable": False,
            },
        )
        return str(data["id"])

    async def fetch_session_member_ids(self, session_id: str) -> set[str]:
        data = await self._request(
            "fetch_session_member_ids", "GET", f"/channels/{session_id}/thread-members"
        )
        return {str(entry["user_id"]) for entry in data or []}

    async def add_member(self, session_id: str, user_id: str) -> None:
        await self._request(
            "add_member", "PUT", f"/channels/{session_id}/thread-members/{user_id}"
        )

    async def remove_member(self, session_id: str, user_id: str) -> None:
        await self._request(
            "remove_member", "DELETE", f"/channels/{session_id}/thread-members/{user_id}"
        )

    async def rename_session(self, session_id: str, title: str) -> None:
        await self._request(
            "rename_session",
            "PATCH",
            f"/channels/{session_id}",
            json={"name": title[:MAX_NAME_LENGTH]},
        )

    async def set_archived(self, session_id: str, archived: bool) -> None:
        await self._request(
            "set_archived", "PATCH", f"/channels/{session_id}", json={"archived": archived}
        )

    async def set_locked(self, session_id: str, locked: bool) -> None:
        await self._request(
            "set_locked", "PATCH", f"/channels/{session_id}", json={"locked": locked}
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        channel_id: str,
        content: str,
        attachment_urls: Sequence[str] = (),
    ) -> str:
        path = f"/channels/{channel_id}/messages"
        payload: dict[str, Any] = {"content": content}
        if not attachment_urls:
            data = await self._request("send_message", "POST", path, json=payload)
            return str(data["id"])

        files = await self._download_attachments(attachment_urls)
        data = await self._request(
            "send_message",
            "POST",
            path,
            data={"payload_json": json.dumps(payload)},
            files=files,
        )
        return str(data["id"])

    async def reply_to_message(self, channel_id: str, message_id: str, content: str) -> str:
        data = await self._request(
            "reply_to_message",
            "POST",
            f"/channels/{channel_id}/messages",
            json={
                "content": content,
                "message_reference": {"message_id": message_id, "fail_if_not_exists": False},
                "allowed_mentions": {"parse": []},
            },
        )
        return str(data["id"])

    async def send_direct_message(self, user_id: str, content: str) -> str:
        channel_id = await self._dm_channel(user_id)
        data = await self._request(
            "send_direct_message",
            "POST",
            f"/channels/{channel_id}/messages",
            json={"content": content},
        )
        return str(data["id"])

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        await self._request(
            "add_reaction",
            "PUT",
            f"/channels/{channel_id}/messages/{message_id}/reactions/{quote(emoji)}/@me",
        )

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        await self._request(
            "delete_message", "DELETE", f"/channels/{channel_id}/messages/{message_id}"
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def fetch_members(self, guild_id: str) -> list[PlatformMember]:
        """List every guild member, following the member list pagination."""
        entries: list[dict[str, Any]] = []
        after = "0"
        while True:
            page = await self._request(
                "fetch_members",
                "GET",
                f"/guilds/{guild_id}/members",
                params={"limit": MEMBER_PAGE_SIZE, "after": after},
            )
            page = page or []
            entries.extend(page)
            if len(page) < MEMBER_PAGE_SIZE:
                break
            after = str(page[-1]["user"]["id"])

        role_ids = {str(r) for entry in entries for r in entry.get("roles", [])}
        role_names = await self._guild_role_names(guild_id, role_ids)
        return [self._parse_member(entry, role_names) for entry in entries]

    async def fetch_member(self, guild_id: str, user_id: str) -> PlatformMember | None:
        try:
            data = await self._request(
                "fetch_member", "GET", f"/guilds/{guild_id}/members/{user_id}"
            )
        except PlatformNotFoundError:
            return None
        role_ids = {str(r) for r in data.get("roles", [])}
        return self._parse_member(data, await self._guild_role_names(guild_id, role_ids))

    async def fetch_user(self, user_id: str) -> PlatformUser:
        data = await self._request("fetch_user", "GET", f"/users/{user_id}")
        return PlatformUser(
            user_id=str(data["id"]),
            username=data.get("username", ""),
            global_name=data.get("global_name"),
        )

    async def fetch_text_channels(self, guild_id: str) -> list[TextChannel]:
        data = await self._request("fetch_text_channels", "GET", f"/guilds/{guild_id}/channels")
        return [
            TextChannel(channel_id=str(c["id"]), name=c.get("name", ""))
            for c in data or []
            if c.get("type") == GUILD_TEXT_CHANNEL
        ]

    # ------------------------------------------------------------------
    # DisambiguationPromptProtocol
    # ------------------------------------------------------------------

    async def present_choices(
        self,
        user_id: str,
        prompt: str,
        choices: Sequence[RouteChoiceOption],
    ) -> bool:
        """DM the user a string select listing the choices."""
        if not choices:
            return False
        options = [
            {"label": choice.label[:MAX_NAME_LENGTH], "value": choice.value}
            for choice in list(choices)[:MAX_SELECT_OPTIONS]
        ]
        try:
            channel_id = await self._dm_channel(user_id)
            await self._request(
                "present_choices",
                "POST",
                f"/channels/{channel_id}/messages",
                json={
                    "content": prompt,
                    "components": [
                        {
                            "type": ACTION_ROW,
                            "components": [
                                {
                                    "type": STRING_SELECT,
                                    "custom_id": ROUTE_SELECT_CUSTOM_ID,
                                    "placeholder": ROUTE_SELECT_PLACEHOLDER,
                                    "options": options,
                                }
                            ],
                        }
                    ],
                },
            )
        except PlatformCallError as e:
            log.warning("route_prompt_failed", user_id=user_id, reason=e.reason)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        """Send one REST request, honouring rate limits.

        Returns:
            Decoded JSON body, or None for empty responses.

        Raises:
            PlatformNotFoundError: On 404.
            PlatformCallError: On any other failure.
        """
        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                raise PlatformCallError(operation, str(e) or type(e).__name__) from e

            if response.status_code == 429 and attempt < self._max_retries:
                wait = self._retry_after(response)
                log.warning(
                    "discord_rate_limited",
                    operation=operation,
                    retry_after=wait,
                    attempt=attempt + 1,
                )
                await asyncio.sleep(wait)
                continue

            if response.status_code == 404:
                raise PlatformNotFoundError(operation, f"{method} {path} not found")
            if response.status_code >= 400:
                raise PlatformCallError(
                    operation, f"HTTP {response.status_code}: {response.text[:200]}"
                )
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        raise PlatformCallError(operation, "rate limited")

    def _retry_after(self, response: httpx.Response) -> float:
        seconds: float | None = None
        try:
            body = response.json()
            if isinstance(body, dict) and "retry_after" in body:
                seconds = float(body["retry_after"])
        except ValueError:
            seconds = None
        if seconds is None:
            try:
                seconds = float(response.headers.get("Retry-After", "1"))
            except ValueError:
                seconds = 1.0
        return max(0.0, min(seconds, self._max_retry_after))

    async def _dm_channel(self, user_id: str) -> str:
        channel_id = self._dm_channels.get(user_id)
        if channel_id is None:
            data = await self._request(
                "open_dm_channel",
                "POST",
                "/users/@me/channels",
                json={"recipient_id": user_id},
            )
            channel_id = str(data["id"])
            self._dm_channels[user_id] = channel_id
        return channel_id

    async def _guild_role_names(
        self, guild_id: str, role_ids: set[str] | frozenset[str] = frozenset()
    ) -> dict[str, str]:
        """Role names for a guild, refetched once if any of role_ids is unknown.

        Roles created after the cache was filled (a new affiliation, say)
        would otherwise surface with an empty name.
        """
        names = self._role_names.get(guild_id)
        if names is not None and not names.keys() >= role_ids:
            log.info("discord_role_cache_refreshed", guild_id=guild_id)
            names = None
        if names is None:
            data = await self._request("fetch_roles", "GET", f"/guilds/{guild_id}/roles")
            names = {str(role["id"]): role.get("name", "") for role in data or []}
            # Ids still unknown belong to deleted roles; stop asking for them
            names.update({role_id: "" for role_id in set(role_ids).difference(names)})
            self._role_names[guild_id] = names
        return names

    def invalidate_role_cache(self, guild_id: str | None = None) -> None:
        """Forget cached role names (after roles were renamed)."""
        if guild_id is None:
            self._role_names.clear()
        else:
            self._role_names.pop(guild_id, None)

    async def _download_attachments(
        self, urls: Sequence[str]
    ) -> list[tuple[str, tuple[str, bytes]]]:
        files: list[tuple[str, tuple[str, bytes]]] = []
        for index, url in enumerate(urls):
            parts = urlsplit(url)
            if parts.scheme != "https" or parts.hostname not in ATTACHMENT_HOSTS:
                raise PlatformCallError(
                    "download_attachment", f"untrusted attachment host: {parts.hostname}"
                )
            try:
                response = await self._downloads.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise PlatformCallError("download_attachment", str(e) or url) from e
            filename = url.rsplit("/", 1)[-1].split("?", 1)[0] or f"attachment-{index}"
            files.append((f"files[{index}]", (filename, response.content)))
        return files

    @staticmethod
    def _parse_member(data: dict[str, Any], role_names: dict[str, str]) -> PlatformMember:
        user = data.get("user", {})
        roles = tuple(
            PlatformRole(role_id=str(role_id), name=role_names.get(str(role_id), ""))
            for role_id in data.get("roles", [])
        )
        return PlatformMember(
            user_id=str(user.get("id", "")),
            username=user.get("username", ""),
            roles=roles,
            is_bot=bool(user.get("bot", False)),
        )
