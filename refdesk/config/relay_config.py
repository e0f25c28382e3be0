"""Dispute relay configuration.

This module defines configuration for the single destination community,
the origin channels the bot listens to, and external call bounds. Values
come from environment variables with validated defaults.

Environment Variables:
- REFDESK_DISCORD_TOKEN: Bot token for the REST adapter
- REFDESK_API_BASE_URL: Platform REST base URL (default: Discord v10)
- REFDESK_DESTINATION_GUILD_ID: Community hosting every dispute session
- REFDESK_HUB_CHANNEL_ID: Channel under which private sessions are created
- REFDESK_ADJUDICATOR_ROLE_IDS: Comma-separated adjudicator role ids
- REFDESK_RETAG_ROLE_ID: Role re-added and pinged on retag
- REFDESK_OPERATOR_ROLE_IDS: Roles allowed to run operator commands
- REFDESK_BOT_USER_ID: Mentioning this user also triggers intake
- REFDESK_ORIGINS: "KEY:guild:channel:role;KEY:guild:channel:role"
- REFDESK_REVIEW_CHANNEL_ID: Channel named in the closing DM (optional)
- REFDESK_RULES_CHANNEL_ID: Rules channel (optional)
- REFDESK_EXTERNAL_CALL_TIMEOUT: Seconds per platform call (default: 10.0)
- REFDESK_DISAMBIGUATION_LIMIT: Max options per prompt (default: 25)
- APP_ENV: "production" (JSON logs) or "development" (console logs)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
PLATFORM_CHOICE_CAP = 25


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_list_env(key: str) -> tuple[str, ...]:
    raw = os.environ.get(key, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _get_optional_env(key: str) -> str | None:
    value = os.environ.get(key, "").strip()
    return value or None


@dataclass(frozen=True)
class OriginConfig:
    """A community the bot listens to for dispute requests.

    Attributes:
        key: Short name, e.g. "GYM".
        guild_id: Origin community id.
        dispute_channel_id: Channel where disputes are raised.
        trigger_role_id: Role whose mention activates intake.
    """

    key: str
    guild_id: str
    dispute_channel_id: str
    trigger_role_id: str

    @classmethod
    def parse(cls, entry: str) -> OriginConfig:
        """Parse "KEY:guild:channel:role".

        Raises:
            ValueError: If the entry does not have four non-empty parts.
        """
        parts = [p.strip() for p in entry.split(":")]
        if len(parts) != 4 or not all(parts):
            raise ValueError(
                f"origin must look like KEY:guild:channel:role, got {entry!r}"
            )
        return cls(
            key=parts[0],
            guild_id=parts[1],
            dispute_channel_id=parts[2],
            trigger_role_id=parts[3],
        )


@dataclass(frozen=True)
class RelayConfig:
    """Configuration for the dispute relay.

    Attributes:
        destination_guild_id: The single community hosting every session.
        hub_channel_id: Parent channel for private sessions.
        adjudicator_role_ids: Roles whose holders adjudicate disputes.
        origins: Origin communities, keyed by guild id.
        retag_role_id: Role used by the retag command.
        operator_role_ids: Roles allowed to run operator commands; empty
            allows anyone.
        bot_user_id: Mentioning this user also activates intake.
        review_channel_id: Channel named in the closing DM.
        rules_channel_id: Rules channel reference.
        discord_token: Bot token.
        api_base_url: Platform REST base URL.
        external_call_timeout_seconds: Bound on every platform call.
        disambiguation_limit: Max options in one disambiguation prompt.
        environment: "production" or "development".
    """

    destination_guild_id: str
    hub_channel_id: str
    adjudicator_role_ids: tuple[str, ...]
    origins: dict[str, OriginConfig] = field(default_factory=dict)
    retag_role_id: str | None = None
    operator_role_ids: tuple[str, ...] = ()
    bot_user_id: str | None = None
    review_channel_id: str | None = None
    rules_channel_id: str | None = None
    discord_token: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    external_call_timeout_seconds: float = 10.0
    disambiguation_limit: int = PLATFORM_CHOICE_CAP
    environment: str = "production"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.destination_guild_id:
            raise ValueError("destination_guild_id is required")
        if not self.hub_channel_id:
            raise ValueError("hub_channel_id is required")
        if not self.adjudicator_role_ids:
            raise ValueError("at least one adjudicator role id is required")
        if self.external_call_timeout_seconds <= 0:
            raise ValueError(
                "external_call_timeout_seconds must be positive, got "
                f"{self.external_call_timeout_seconds}"
            )
        if not 1 <= self.disambiguation_limit <= PLATFORM_CHOICE_CAP:
            raise ValueError(
                f"disambiguation_limit must be between 1 and {PLATFORM_CHOICE_CAP}, "
                f"got {self.disambiguation_limit}"
            )
        for guild_id, origin in self.origins.items():
            if guild_id != origin.guild_id:
                raise ValueError(
                    f"origin {origin.key} is keyed by {guild_id} but targets {origin.guild_id}"
                )

    def origin_for_guild(self, guild_id: str | None) -> OriginConfig | None:
        if guild_id is None:
            return None
        return self.origins.get(guild_id)

    @property
    def adjudicator_roles(self) -> frozenset[str]:
        return frozenset(self.adjudicator_role_ids)

    @classmethod
    def from_environment(cls) -> RelayConfig:
        """Create config from environment variables with defaults.

        Returns:
            RelayConfig with values from environment or defaults.

        Raises:
            ValueError: If required values are missing or malformed.
        """
        origins: dict[str, OriginConfig] = {}
        for entry in os.environ.get("REFDESK_ORIGINS", "").split(";"):
            if entry.strip():
                origin = OriginConfig.parse(entry)
                origins[origin.guild_id] = origin

        return cls(
            destination_guild_id=os.environ.get("REFDESK_DESTINATION_GUILD_ID", "").strip(),
            hub_channel_id=os.environ.get("REFDESK_HUB_CHANNEL_ID", "").strip(),
            adjudicator_role_ids=_get_list_env("REFDESK_ADJUDICATOR_ROLE_IDS"),
            origins=origins,
            retag_role_id=_get_optional_env("REFDESK_RETAG_ROLE_ID"),
            operator_role_ids=_get_list_env("REFDESK_OPERATOR_ROLE_IDS"),
            bot_user_id=_get_optional_env("REFDESK_BOT_USER_ID"),
            review_channel_id=_get_optional_env("REFDESK_REVIEW_CHANNEL_ID"),
            rules_channel_id=_get_optional_env("REFDESK_RULES_CHANNEL_ID"),
            discord_token=os.environ.get("REFDESK_DISCORD_TOKEN", "").strip(),
            api_base_url=os.environ.get("REFDESK_API_BASE_URL", DEFAULT_API_BASE_URL),
            external_call_timeout_seconds=_get_float_env("REFDESK_EXTERNAL_CALL_TIMEOUT", 10.0),
            disambiguation_limit=_get_int_env(
                "REFDESK_DISAMBIGUATION_LIMIT", PLATFORM_CHOICE_CAP
            ),
            environment=os.environ.get("APP_ENV", "production"),
        )


# Testing config with one origin and short timeouts
TEST_RELAY_CONFIG = RelayConfig(
    destination_guild_id="dest-guild",
    hub_channel_id="hub-channel",
    adjudicator_role_ids=("ref-role", "jr-ref-role"),
    origins={
        "origin-guild": OriginConfig(
            key="GYM",
            guild_id="origin-guild",
            dispute_channel_id="dispute-channel",
            trigger_role_id="trigger-role",
        )
    },
    retag_role_id="retag-role",
    bot_user_id="bot-user",
    external_call_timeout_seconds=0.5,
    environment="development",
)
