"""Unit tests for RelayConfig and OriginConfig.

Tests for relay configuration including:
- Origin entry parsing
- Environment variable loading
- Input validation
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from refdesk.config import TEST_RELAY_CONFIG, OriginConfig, RelayConfig
from refdesk.config.relay_config import DEFAULT_API_BASE_URL

REQUIRED_ENV = {
    "REFDESK_DESTINATION_GUILD_ID": "dest",
    "REFDESK_HUB_CHANNEL_ID": "hub",
    "REFDESK_ADJUDICATOR_ROLE_IDS": "ref, jr-ref",
}


class TestOriginConfig:
    """Tests for the KEY:guild:channel:role origin format."""

    def test_parse(self) -> None:
        origin = OriginConfig.parse("GYM:g1:c1:r1")
        assert origin == OriginConfig("GYM", "g1", "c1", "r1")

    def test_parse_strips_whitespace(self) -> None:
        origin = OriginConfig.parse(" GYM : g1 : c1 : r1 ")
        assert origin.dispute_channel_id == "c1"

    @pytest.mark.parametrize("entry", ["GYM:g1:c1", "GYM:g1::r1", "a:b:c:d:e"])
    def test_parse_rejects_malformed(self, entry: str) -> None:
        with pytest.raises(ValueError, match="KEY:guild:channel:role"):
            OriginConfig.parse(entry)


class TestRelayConfigValidation:
    """Tests for __post_init__ validation."""

    def test_test_config_is_valid(self) -> None:
        assert TEST_RELAY_CONFIG.origin_for_guild("origin-guild") is not None
        assert TEST_RELAY_CONFIG.adjudicator_roles == frozenset({"ref-role", "jr-ref-role"})

    def test_requires_destination(self) -> None:
        with pytest.raises(ValueError, match="destination_guild_id"):
            RelayConfig(destination_guild_id="", hub_channel_id="hub", adjudicator_role_ids=("r",))

    def test_requires_hub(self) -> None:
        with pytest.raises(ValueError, match="hub_channel_id"):
            RelayConfig(destination_guild_id="d", hub_channel_id="", adjudicator_role_ids=("r",))

    def test_requires_adjudicator_roles(self) -> None:
        with pytest.raises(ValueError, match="adjudicator"):
            RelayConfig(destination_guild_id="d", hub_channel_id="hub", adjudicator_role_ids=())

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            RelayConfig(
                destination_guild_id="d",
                hub_channel_id="hub",
                adjudicator_role_ids=("r",),
                external_call_timeout_seconds=0,
            )

    @pytest.mark.parametrize("limit", [0, 26])
    def test_disambiguation_limit_bounds(self, limit: int) -> None:
        with pytest.raises(ValueError, match="disambiguation_limit"):
            RelayConfig(
                destination_guild_id="d",
                hub_channel_id="hub",
                adjudicator_role_ids=("r",),
                disambiguation_limit=limit,
            )

    def test_origin_key_must_match_guild(self) -> None:
        with pytest.raises(ValueError, match="keyed by"):
            RelayConfig(
                destination_guild_id="d",
                hub_channel_id="hub",
                adjudicator_role_ids=("r",),
                origins={"other": OriginConfig("GYM", "g1", "c1", "r1")},
            )

    def test_unknown_and_private_guilds(self) -> None:
        assert TEST_RELAY_CONFIG.origin_for_guild(None) is None
        assert TEST_RELAY_CONFIG.origin_for_guild("elsewhere") is None


class TestFromEnvironment:
    """Tests for RelayConfig.from_environment()."""

    def test_defaults(self) -> None:
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            config = RelayConfig.from_environment()

        assert config.destination_guild_id == "dest"
        assert config.adjudicator_role_ids == ("ref", "jr-ref")
        assert config.origins == {}
        assert config.operator_role_ids == ()
        assert config.retag_role_id is None
        assert config.api_base_url == DEFAULT_API_BASE_URL
        assert config.external_call_timeout_seconds == 10.0
        assert config.disambiguation_limit == 25
        assert config.environment == "production"

    def test_full_environment(self) -> None:
        env = {
            **REQUIRED_ENV,
            "REFDESK_ORIGINS": "GYM:g1:c1:r1; PVP:g2:c2:r2",
            "REFDESK_RETAG_ROLE_ID": "retag",
            "REFDESK_OPERATOR_ROLE_IDS": "op1,op2",
            "REFDESK_BOT_USER_ID": "bot",
            "REFDESK_REVIEW_CHANNEL_ID": "review",
            "REFDESK_EXTERNAL_CALL_TIMEOUT": "2.5",
            "REFDESK_DISAMBIGUATION_LIMIT": "10",
            "APP_ENV": "development",
        }
        with patch.dict(os.environ, env, clear=True):
            config = RelayConfig.from_environment()

        assert set(config.origins) == {"g1", "g2"}
        assert config.origins["g2"].key == "PVP"
        assert config.retag_role_id == "retag"
        assert config.operator_role_ids == ("op1", "op2")
        assert config.bot_user_id == "bot"
        assert config.review_channel_id == "review"
        assert config.external_call_timeout_seconds == 2.5
        assert config.disambiguation_limit == 10
        assert config.environment == "development"

    def test_invalid_numbers_fall_back_to_defaults(self) -> None:
        env = {
            **REQUIRED_ENV,
            "REFDESK_EXTERNAL_CALL_TIMEOUT": "soon",
            "REFDESK_DISAMBIGUATION_LIMIT": "many",
        }
        with patch.dict(os.environ, env, clear=True):
            config = RelayConfig.from_environment()

        assert config.external_call_timeout_seconds == 10.0
        assert config.disambiguation_limit == 25

    def test_missing_required_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="destination_guild_id"):
                RelayConfig.from_environment()

    def test_malformed_origin(self) -> None:
        env = {**REQUIRED_ENV, "REFDESK_ORIGINS": "GYM:g1"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError):
                RelayConfig.from_environment()
