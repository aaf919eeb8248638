"""Tests for application configuration settings."""

import os
from unittest.mock import patch

import pytest

from pinmint.core.config import DEFAULT_CONTRACT_ADDRESS, Settings


class TestChainSettings:
    """Test chain defaults and policy validation."""

    def test_should_have_documented_defaults(self):
        """Test defaults for the contract, gas policy and lookups."""
        settings = Settings()

        assert settings.NFT_CONTRACT_ADDRESS == DEFAULT_CONTRACT_ADDRESS
        assert settings.GAS_PRICE_MULTIPLIER_PERCENT == 120
        assert settings.MINT_GAS_LIMIT == 500_000
        assert settings.CONFIRMATION_TIMEOUT > 0

    def test_should_read_rpc_url_from_environment(self):
        """Test SEPOLIA_RPC_URL can be provided via environment."""
        with patch.dict(os.environ, {"SEPOLIA_RPC_URL": "https://rpc.example"}):
            settings = Settings()
        assert settings.SEPOLIA_RPC_URL == "https://rpc.example"

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_should_reject_non_positive_confirmation_timeout(self, timeout):
        with pytest.raises(ValueError, match="CONFIRMATION_TIMEOUT"):
            Settings(CONFIRMATION_TIMEOUT=timeout)

    def test_should_reject_multiplier_below_100(self):
        with pytest.raises(ValueError, match="GAS_PRICE_MULTIPLIER_PERCENT"):
            Settings(GAS_PRICE_MULTIPLIER_PERCENT=90)

    @pytest.mark.parametrize("mode", ["fixture", "chain_with_fixture"])
    def test_should_refuse_fixture_lookups_in_production(self, mode):
        with pytest.raises(ValueError, match="not allowed"):
            Settings(ENVIRONMENT="production", NFT_LOOKUP_MODE=mode)

    def test_should_allow_fixture_fallback_outside_production(self):
        settings = Settings(ENVIRONMENT="development", NFT_LOOKUP_MODE="chain_with_fixture")
        assert settings.NFT_LOOKUP_MODE == "chain_with_fixture"


class TestPinningSettings:
    """Test pinning credential detection."""

    def test_should_not_be_configured_without_credentials(self):
        settings = Settings(PINATA_JWT=None, PINATA_API_KEY=None, PINATA_SECRET_KEY=None)
        assert not settings.pinning_configured

    def test_should_be_configured_with_jwt(self):
        assert Settings(PINATA_JWT="jwt").pinning_configured

    def test_should_require_both_halves_of_key_pair(self):
        settings = Settings(PINATA_JWT=None, PINATA_API_KEY="key", PINATA_SECRET_KEY=None)
        assert not settings.pinning_configured


class TestTestingOverrides:
    """Test database isolation under TESTING=true."""

    def test_should_prefix_database_name(self):
        with patch.dict(os.environ, {"TESTING": "true"}, clear=False):
            os.environ.pop("TEST_DATABASE_URL", None)
            settings = Settings(DATABASE_URL="postgresql://u:p@localhost/pinmint")
        assert settings.DATABASE_URL == "postgresql://u:p@localhost/test_pinmint"

    def test_should_prefer_explicit_test_database_url(self):
        with patch.dict(
            os.environ,
            {"TESTING": "true", "TEST_DATABASE_URL": "postgresql://u:p@db/other"},
        ):
            settings = Settings()
        assert settings.DATABASE_URL == "postgresql://u:p@db/other"

    def test_should_replace_wildcard_cors_origins(self):
        settings = Settings(cors_origins=["*"])
        assert "*" not in settings.cors_origins
