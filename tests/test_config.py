"""
Tests for environment-driven settings.

Run with: python -m pytest tests/test_config.py -v
"""

import logging
from zoneinfo import ZoneInfo

import pytest

from wellness_analytics.core import config
from wellness_analytics.core.config import Settings, configure_logging, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GEMINI_API_KEY", "GOOGLE_AI_API_KEY", "INSIGHTS_FEATURE_ENABLED", "DAY_BOUNDARY_TZ"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:

    def test_defaults(self):
        s = Settings(_env_file=None)

        assert s.GEMINI_API_KEY is None
        assert s.GEMINI_MODEL == "gemini-pro"
        assert s.AI_TIMEOUT_SECONDS == 20.0
        assert s.DEFAULT_LOOKBACK_DAYS == 30
        assert s.ai_enabled is False

    @pytest.mark.parametrize("key", ["", "test-key", "  test-key  ", "changeme"])
    def test_placeholder_keys_disable_ai(self, key):
        assert Settings(_env_file=None, GEMINI_API_KEY=key).ai_enabled is False

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc123")
        assert Settings(_env_file=None).ai_enabled is True

    def test_google_alias(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "abc123")
        s = Settings(_env_file=None)

        assert s.GEMINI_API_KEY == "abc123"
        assert s.ai_enabled is True

    def test_feature_flag(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc123")
        monkeypatch.setenv("INSIGHTS_FEATURE_ENABLED", "false")
        assert Settings(_env_file=None).ai_enabled is False

    def test_day_boundary_zone(self, monkeypatch):
        monkeypatch.setenv("DAY_BOUNDARY_TZ", "Asia/Manila")
        assert Settings(_env_file=None).day_boundary_zone == ZoneInfo("Asia/Manila")

    def test_unknown_zone_falls_back_to_utc(self, caplog):
        s = Settings(_env_file=None, DAY_BOUNDARY_TZ="Mars/Olympus_Mons")

        with caplog.at_level(logging.WARNING):
            assert s.day_boundary_zone == ZoneInfo("UTC")
        assert "Mars/Olympus_Mons" in caplog.text

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, AI_TIMEOUT_SECONDS=0)

    def test_configure_logging_uses_level(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        configure_logging("debug")

        assert calls["level"] == logging.DEBUG
        assert "%(name)s" in calls["format"]

    def test_settings_load_lazily_and_once(self, monkeypatch):
        get_settings.cache_clear()
        monkeypatch.setenv("LOG_LEVEL", "warning")
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        assert not hasattr(config, "settings")
        configure_logging()

        assert calls["level"] == logging.WARNING
        assert get_settings() is get_settings()
        get_settings.cache_clear()
