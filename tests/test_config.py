"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from trendwatch.sma.config import DEFAULT_TICKERS_FILE, Settings
from trendwatch.sma.errors import ConfigurationMissingError, InvalidConfigurationError


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.telegram_bot_token is None
        assert settings.tickers_file == DEFAULT_TICKERS_FILE
        assert settings.trade_amount == 1000.0
        assert settings.dry_run is False
        assert not settings.telegram_configured
        assert not settings.edge_config_configured

    def test_reads_environment(self):
        settings = Settings.from_env({
            "TELEGRAM_BOT_TOKEN": "tok",
            "TELEGRAM_CHAT_ID": "42",
            "CRON_SECRET": "s3cret",
            "EDGE_CONFIG": "https://edge-config.vercel.com/ecfg_1?token=t",
            "TICKERS_FILE": "/tmp/tickers.json",
            "TRADE_AMOUNT": "250.5",
            "DRY_RUN": "true",
        })
        assert settings.telegram_configured
        assert settings.edge_config_configured
        assert settings.cron_secret == "s3cret"
        assert settings.tickers_file == Path("/tmp/tickers.json")
        assert settings.trade_amount == 250.5
        assert settings.dry_run is True

    def test_blank_values_are_unset(self):
        settings = Settings.from_env({"TELEGRAM_BOT_TOKEN": "  ", "CRON_SECRET": ""})
        assert settings.telegram_bot_token is None
        assert settings.cron_secret is None

    @pytest.mark.parametrize("raw", ["lots", "1,500", "-5", "0"])
    def test_invalid_trade_amount_is_rejected(self, raw):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            Settings.from_env({"TRADE_AMOUNT": raw})
        assert "TRADE_AMOUNT" in str(excinfo.value)

    def test_invalid_dry_run_is_rejected(self):
        with pytest.raises(InvalidConfigurationError, match="DRY_RUN"):
            Settings.from_env({"DRY_RUN": "maybe"})

    @pytest.mark.parametrize("raw, expected", [("1", True), ("yes", True), ("false", False), ("0", False)])
    def test_dry_run_flags(self, raw, expected):
        assert Settings.from_env({"DRY_RUN": raw}).dry_run is expected

    def test_ignores_unrelated_variables(self):
        assert Settings.from_env({"PATH": "/usr/bin", "HOME": "/root"}) == Settings.from_env({})

    def test_settings_are_frozen(self):
        settings = Settings.from_env({})
        with pytest.raises(ValidationError):
            settings.dry_run = True

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("TRADE_AMOUNT", "750")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "99")
        settings = Settings.from_env()
        assert settings.trade_amount == 750.0
        assert settings.telegram_chat_id == "99"

    def test_require_names_missing_variables(self):
        settings = Settings(telegram_bot_token="tok")
        with pytest.raises(ConfigurationMissingError) as excinfo:
            settings.require("telegram_bot_token", "telegram_chat_id")
        assert str(excinfo.value) == "TELEGRAM_CHAT_ID is required but not configured"

    def test_require_unknown_field(self):
        with pytest.raises(AttributeError):
            Settings().require("nope")
