"""
Tests for settings loading and secret masking.
"""

import pytest
from pydantic import ValidationError

from calendar_bot.config import Settings, get_settings, mask_token


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.google_calendar_id == "primary"
        assert settings.port == 8080
        assert settings.bot_mode == "polling"
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.context_messages == 10
        assert settings.calendar_timeout_seconds == 10.0
        assert settings.timezone == "UTC"

    @pytest.mark.parametrize("missing", [
        "TELEGRAM_BOT_TOKEN",
        "OPENAI_API_KEY",
        "GOOGLE_CREDENTIALS_FILE",
        "GOOGLE_CALENDAR_ID",
    ])
    def test_required_values(self, monkeypatch, missing):
        monkeypatch.delenv(missing)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_port_from_env(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        assert Settings(_env_file=None).port == 9000

    def test_unknown_mode_rejected(self, monkeypatch):
        monkeypatch.setenv("BOT_MODE", "carrier-pigeon")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestMaskToken:

    def test_long_token(self):
        assert mask_token("123456:ABCDEFGHIJ") == "1234...GHIJ"

    @pytest.mark.parametrize("token", ["", "short", "12345678"])
    def test_short_token(self, token):
        assert mask_token(token) == "***"
