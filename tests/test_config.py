"""Tests for settings and logging setup."""

import structlog

from intake.config import Settings, get_settings
from intake.logging_config import configure_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FIELD_DEBOUNCE_SECONDS", raising=False)
        monkeypatch.delenv("STEP_CACHE_SECONDS", raising=False)

        settings = Settings(_env_file=None)

        assert settings.FIELD_DEBOUNCE_SECONDS == 0.3
        assert settings.STEP_CACHE_SECONDS == 1.0
        assert settings.RENEWAL_WINDOW_MONTHS == 6

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("FIELD_DEBOUNCE_SECONDS", "0.5")

        assert Settings(_env_file=None).FIELD_DEBOUNCE_SECONDS == 0.5

    def test_cached(self):
        assert get_settings() is get_settings()


class TestLogging:
    def test_configure_logging(self):
        configure_logging(level="debug", debug=True)
        structlog.get_logger().debug("logging_configured", component="tests")

        configure_logging()
        assert structlog.is_configured()
