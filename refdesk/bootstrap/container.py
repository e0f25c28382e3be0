"""Bootstrap wiring for the dispute relay services.

Builds one set of services around a single session store, lock registry
and platform client. With a bot token configured the Discord REST adapter
is used; without one, the in-memory stubs are wired so the API can run
locally.
"""

from __future__ import annotations

from dataclasses import dataclass

from dotenv import load_dotenv
from structlog import get_logger

from refdesk.application.ports.chat_platform import (
    ChatPlatformProtocol,
    DisambiguationPromptProtocol,
)
from refdesk.application.ports.session_store import SessionStoreProtocol
from refdesk.application.services import (
    EventDispatcher,
    IntakeCoordinator,
    KeyedLockRegistry,
    OperatorAuthorizer,
    PlatformCaller,
    RosterSynchronizer,
    RoutingResolver,
    SessionLifecycleService,
)
from refdesk.config import RelayConfig
from refdesk.infrastructure.adapters.discord import DiscordRestClient
from refdesk.infrastructure.persistence import InMemorySessionStore
from refdesk.infrastructure.stubs import ChatPlatformStub, DisambiguationPromptStub

logger = get_logger(__name__)


@dataclass
class RelayContainer:
    """Every wired service of one relay instance."""

    config: RelayConfig
    store: SessionStoreProtocol
    platform: ChatPlatformProtocol
    prompt: DisambiguationPromptProtocol
    caller: PlatformCaller
    locks: KeyedLockRegistry
    roster: RosterSynchronizer
    intake: IntakeCoordinator
    router: RoutingResolver
    lifecycle: SessionLifecycleService
    authorizer: OperatorAuthorizer
    dispatcher: EventDispatcher


def build_container(
    config: RelayConfig,
    platform: ChatPlatformProtocol | None = None,
    prompt: DisambiguationPromptProtocol | None = None,
    store: SessionStoreProtocol | None = None,
) -> RelayContainer:
    """Wire the relay services.

    Args:
        config: Relay configuration.
        platform: Platform client; defaults to the REST adapter when a
            token is configured, otherwise the in-memory stub.
        prompt: Disambiguation UI; defaults to the platform client when it
            implements it, otherwise the in-memory stub.
        store: Session store; defaults to a fresh in-memory store.

    Returns:
        The wired container.
    """
    if platform is None:
        if config.discord_token:
            platform = DiscordRestClient(
                token=config.discord_token,
                base_url=config.api_base_url,
                timeout_seconds=config.external_call_timeout_seconds,
            )
        else:
            logger.warning("discord_token_missing_using_platform_stub")
            platform = ChatPlatformStub()
    if prompt is None:
        if isinstance(platform, DiscordRestClient):
            prompt = platform
        else:
            prompt = DisambiguationPromptStub()

    if store is None:
        store = InMemorySessionStore()
    caller = PlatformCaller(config.external_call_timeout_seconds)
    locks = KeyedLockRegistry()
    roster = RosterSynchronizer(
        platform=platform,
        caller=caller,
        destination_guild_id=config.destination_guild_id,
        adjudicator_role_ids=config.adjudicator_role_ids,
    )
    intake = IntakeCoordinator(store, platform, roster, caller, config, locks)
    router = RoutingResolver(
        store, platform, prompt, caller, choice_limit=config.disambiguation_limit
    )
    lifecycle = SessionLifecycleService(store, platform, roster, caller, config, locks)
    authorizer = OperatorAuthorizer(
        platform, caller, config.destination_guild_id, config.operator_role_ids
    )

    return RelayContainer(
        config=config,
        store=store,
        platform=platform,
        prompt=prompt,
        caller=caller,
        locks=locks,
        roster=roster,
        intake=intake,
        router=router,
        lifecycle=lifecycle,
        authorizer=authorizer,
        dispatcher=EventDispatcher(intake, router),
    )


_container: RelayContainer | None = None


def get_container() -> RelayContainer:
    """Get the process-wide container, building it from the environment."""
    global _container
    if _container is None:
        load_dotenv()
        _container = build_container(RelayConfig.from_environment())
    return _container


def set_container(container: RelayContainer) -> None:
    """Replace the process-wide container (for testing)."""
    global _container
    _container = container


def reset_container() -> None:
    """Drop the process-wide container (for testing)."""
    global _container
    _container = None
