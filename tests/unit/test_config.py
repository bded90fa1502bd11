"""
Unit Tests for Configuration Module

These tests verify that the configuration system works correctly:
- Default values are applied when needed
- Comma-separated settings are parsed into lists / mappings
- Validation catches invalid configurations

Run with:
    pytest tests/unit/test_config.py -v
"""

import pytest
from core.config import ALL_EXCHANGES, DEFAULT_RATE_LIMITS, Settings, settings, validate_configuration


class TestConfigurationLoading:
    """Test that configuration loads with sensible values"""

    def test_binance_base_url_loaded(self):
        """Verify Binance API URL is set"""
        assert settings.binance_base_url is not None
        assert "binance" in settings.binance_base_url.lower()
        assert settings.binance_base_url.startswith("http")

    def test_app_port_is_valid_integer(self):
        """Verify app port is a valid integer"""
        assert isinstance(settings.app_port, int)
        assert 1 <= settings.app_port <= 65535

    def test_timeouts_are_positive(self):
        assert settings.cex_timeout > 0
        assert settings.dex_timeout > 0
        assert settings.rpc_timeout > 0

    def test_api_keys_default_to_empty(self):
        """Keys are optional; absence is an empty string"""
        config = Settings(_env_file=None)
        assert config.coinmarketcap_api_key == ""
        assert config.moralis_api_key == ""
        assert config.has_okx_credentials is False


class TestExchangeList:
    """Test parsing of ENABLED_EXCHANGES"""

    def test_default_is_all_twelve_in_canonical_order(self):
        config = Settings(_env_file=None)
        assert config.exchanges_list == list(ALL_EXCHANGES)
        assert len(config.exchanges_list) == 12

    def test_names_are_lowercased_and_stripped(self):
        config = Settings(enabled_exchanges=" Binance , OKX-DEX,curve ")
        assert config.exchanges_list == ["binance", "okx-dex", "curve"]

    def test_every_rate_limited_venue_is_known(self):
        assert set(DEFAULT_RATE_LIMITS) <= set(ALL_EXCHANGES)


class TestDerivedProperties:

    def test_rpc_overrides_parsed(self):
        config = Settings(rpc_url_overrides="1=https://eth.example, 56 = https://bsc.example,bad")
        assert config.rpc_overrides == {1: "https://eth.example", 56: "https://bsc.example"}

    def test_fee_tiers_parsed_in_order(self):
        config = Settings(uniswap_fee_tiers="500, 3000,10000")
        assert config.fee_tiers_list == [500, 3000, 10000]

    def test_okx_credentials_need_all_three(self):
        assert Settings(okx_api_key="k", okx_secret_key="s").has_okx_credentials is False
        assert Settings(okx_api_key="k", okx_secret_key="s", okx_passphrase="p").has_okx_credentials is True


class TestConfigurationValidation:
    """Test the validate_configuration function"""

    def test_default_configuration_is_valid(self):
        """Should not raise an exception with default config"""
        validate_configuration(Settings(_env_file=None))

    def test_unknown_exchange_rejected(self):
        with pytest.raises(ValueError, match="Unknown exchange"):
            validate_configuration(Settings(enabled_exchanges="binance,mtgox"))

    def test_duplicate_exchange_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            validate_configuration(Settings(enabled_exchanges="binance,binance"))

    def test_empty_exchange_list_rejected(self):
        with pytest.raises(ValueError, match="at least one exchange"):
            validate_configuration(Settings(enabled_exchanges=" , "))

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError, match="DEX_TIMEOUT"):
            validate_configuration(Settings(dex_timeout=0))

    def test_unknown_default_chain_rejected(self):
        with pytest.raises(ValueError, match="DEFAULT_CHAIN_ID"):
            validate_configuration(Settings(default_chain_id=999999))

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError, match="LOG_LEVEL"):
            validate_configuration(Settings(log_level="VERBOSE"))

    def test_invalid_port_rejected(self):
        with pytest.raises(ValueError, match="port"):
            validate_configuration(Settings(app_port=70000))

    def test_okx_dex_without_credentials_warns(self, caplog):
        validate_configuration(Settings(_env_file=None, enabled_exchanges="binance,okx-dex"))
        assert "okx-dex is enabled without" in caplog.text

    def test_okx_dex_with_credentials_is_quiet(self, caplog):
        validate_configuration(Settings(
            _env_file=None, enabled_exchanges="okx-dex",
            okx_api_key="k", okx_secret_key="s", okx_passphrase="p",
        ))
        assert "okx-dex is enabled without" not in caplog.text
