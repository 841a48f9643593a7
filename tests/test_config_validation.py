"""
Configuration Validation Tests

Verifies that validate_config() reports missing or invalid settings with
helpful messages instead of failing later with cryptic errors.

Test data and expected values are defined in tests/test_config.py.
"""

import logging

import pytest
from unittest.mock import patch

from src.config import config as settings

from tests.test_config import CONFIG, EXPECTED, MESSAGES


ERRORS = MESSAGES["config_errors"]


class TestDefaults:
    """Defaults match the documented values."""

    def test_port_is_integer(self):
        assert isinstance(settings.PORT, int)
        assert settings.PORT > 0

    def test_backends(self):
        assert list(settings.VALID_BACKENDS) == CONFIG["available_backends"]

    def test_schedule_range(self):
        assert 0 <= settings.SCHEDULE_HOUR <= 23
        assert 0 <= settings.SCHEDULE_MINUTE <= 59


class TestEnvList:
    """Tests for comma-separated list parsing."""

    def test_splits_and_trims(self, monkeypatch):
        monkeypatch.setenv("TEST_RECIPIENTS", " a@example.org, ,b@example.org ")

        assert settings._env_list("TEST_RECIPIENTS") == ["a@example.org", "b@example.org"]

    def test_unset_is_empty(self, monkeypatch):
        monkeypatch.delenv("TEST_RECIPIENTS", raising=False)

        assert settings._env_list("TEST_RECIPIENTS") == []


class TestValidateConfig:
    """Tests for validate_config()."""

    @pytest.fixture
    def valid_development(self):
        with patch.multiple(
            settings,
            APP_ENV=CONFIG["environments"]["development"],
            STORAGE_BACKEND="sqlite",
            REQUEST_TIMEOUT=30,
            PREVIEW_TIMEOUT=10.0,
            PREVIEW_MAX_WORKERS=4,
            SCHEDULE_HOUR=9,
            SCHEDULE_MINUTE=0,
        ):
            yield

    def test_development_defaults_are_valid(self, valid_development):
        assert settings.validate_config() == []

    def test_production_requires_email_settings(self, valid_development):
        with patch.multiple(
            settings,
            APP_ENV=CONFIG["environments"]["production"],
            RESEND_API_KEY="",
            NEWSLETTER_FROM="",
            NEWSLETTER_TO=[],
        ):
            errors = settings.validate_config()

        joined = " ".join(errors)
        for var in EXPECTED["config"]["required_production_vars"]:
            assert var in joined

    def test_production_complete_is_valid(self, valid_development):
        with patch.multiple(
            settings,
            APP_ENV=CONFIG["environments"]["production"],
            RESEND_API_KEY="re_live",
            NEWSLETTER_FROM="news@example.org",
            NEWSLETTER_TO=["team@example.org"],
        ):
            assert settings.validate_config() == []

    def test_memory_backend_rejected_in_production(self, valid_development):
        with patch.multiple(
            settings,
            APP_ENV=CONFIG["environments"]["production"],
            STORAGE_BACKEND="memory",
            RESEND_API_KEY="re_live",
            NEWSLETTER_FROM="news@example.org",
            NEWSLETTER_TO=["team@example.org"],
        ):
            errors = settings.validate_config()

        assert len(errors) == 1
        assert "memory" in errors[0]

    def test_unknown_backend(self, valid_development):
        with patch.object(settings, "STORAGE_BACKEND", "postgres"):
            errors = settings.validate_config()

        assert any(ERRORS["bad_backend"] in e for e in errors)

    def test_airtable_backend_needs_credentials(self, valid_development):
        with patch.multiple(settings, STORAGE_BACKEND="airtable", AIRTABLE_API_KEY="", AIRTABLE_BASE_ID=""):
            errors = settings.validate_config()

        assert any(ERRORS["missing_airtable_key"] in e for e in errors)
        assert any("AIRTABLE_BASE_ID" in e for e in errors)

    @pytest.mark.parametrize("name,value", [
        ("REQUEST_TIMEOUT", 0),
        ("PREVIEW_TIMEOUT", 0.0),
        ("PREVIEW_MAX_WORKERS", 0),
        ("SCHEDULE_HOUR", 24),
        ("SCHEDULE_MINUTE", 60),
    ])
    def test_out_of_range_values(self, valid_development, name, value):
        with patch.object(settings, name, value):
            errors = settings.validate_config()

        assert any(name in e for e in errors)


class TestHelpers:
    """Tests for environment helpers and logging setup."""

    def test_is_production(self):
        with patch.object(settings, "APP_ENV", "production"):
            assert settings.is_production() is True
            assert settings.is_development() is False

    def test_print_config_summary_hides_secrets(self, capsys):
        with patch.multiple(settings, RESEND_API_KEY="re_secret", ADMIN_TOKEN="tok_secret"):
            settings.print_config_summary()

        out = capsys.readouterr().out
        assert "re_secret" not in out
        assert "tok_secret" not in out
        assert "RESEND_API_KEY: ***" in out

    def test_configure_logging_level(self):
        with patch("src.config.config.logging.basicConfig") as mock_basic:
            settings.configure_logging("warning")

        assert mock_basic.call_args[1]["level"] == logging.WARNING
