"""
Pytest configuration and shared fixtures for refdesk tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

import pytest

from refdesk.bootstrap.container import RelayContainer, build_container
from refdesk.config import TEST_RELAY_CONFIG, RelayConfig
from refdesk.infrastructure.persistence import InMemorySessionStore
from refdesk.infrastructure.stubs import ChatPlatformStub, DisambiguationPromptStub
from tests.helpers import seeded_platform


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from refdesk import __version__

    return __version__


@pytest.fixture
def config() -> RelayConfig:
    return TEST_RELAY_CONFIG


@pytest.fixture
def platform() -> ChatPlatformStub:
    """Platform stub seeded with the origin and destination communities."""
    return seeded_platform()


@pytest.fixture
def prompt() -> DisambiguationPromptStub:
    return DisambiguationPromptStub()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def container(
    config: RelayConfig,
    platform: ChatPlatformStub,
    prompt: DisambiguationPromptStub,
    store: InMemorySessionStore,
) -> RelayContainer:
    """Fully wired services over the in-memory stubs."""
    return build_container(config, platform=platform, prompt=prompt, store=store)
