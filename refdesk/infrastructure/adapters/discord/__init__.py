"""Discord REST adapter."""

from refdesk.infrastructure.adapters.discord.discord_rest_client import (
    ROUTE_SELECT_CUSTOM_ID,
    DiscordRestClient,
)

__all__: list[str] = ["DiscordRestClient", "ROUTE_SELECT_CUSTOM_ID"]
