"""Configuration module for refdesk.

Available Configurations:
- RelayConfig: Destination community, origins, roles and call bounds
- OriginConfig: One origin community's dispute channel and trigger role
"""

from refdesk.config.relay_config import (
    TEST_RELAY_CONFIG,
    OriginConfig,
    RelayConfig,
)

__all__ = [
    "OriginConfig",
    "RelayConfig",
    "TEST_RELAY_CONFIG",
]
