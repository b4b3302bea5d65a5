"""
Tests for Phase 1: Infrastructure & Configuration
Feature: personal-injury case valuation

Tests cover:
- PersonalInjurySettings dataclass and environment loading
- Remote service configuration detection
- Settings validation
- Logging setup and numeric coercion helpers
"""
import logging
import math

import pytest

PI_ENV_VARS = [
    "PI_VALUATION_ENABLED",
    "PI_REMOTE_VALUATION_ENABLED",
    "PI_REMOTE_VALUATION_URL",
    "PI_REMOTE_VALUATION_API_KEY",
    "PI_REMOTE_VALUATION_TIMEOUT",
    "PI_DEFAULT_MULTIPLIER",
    "PI_MILEAGE_RATE",
    "PI_DATA_PATH",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove personal-injury env vars so defaults apply."""
    for var in PI_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestPersonalInjurySettings:
    """Tests for PersonalInjurySettings configuration."""

    def test_settings_has_default_values(self, clean_env):
        """Defaults should enable the local formula with an 8s remote timeout."""
        from app.config import PersonalInjurySettings

        settings = PersonalInjurySettings.from_env()

        assert settings.enabled is True
        assert settings.remote_enabled is True
        assert settings.remote_url == ""
        assert settings.remote_api_key is None
        assert settings.remote_timeout == 8.0
        assert settings.default_multiplier == 2.0
        assert settings.mileage_rate == 0.67

    def test_settings_loads_from_env(self, clean_env):
        """Settings should load from environment variables."""
        from app.config import PersonalInjurySettings

        clean_env.setenv("PI_REMOTE_VALUATION_URL", "https://valuation.example.com/api/calc")
        clean_env.setenv("PI_REMOTE_VALUATION_API_KEY", "secret")
        clean_env.setenv("PI_REMOTE_VALUATION_TIMEOUT", "3.5")
        clean_env.setenv("PI_DEFAULT_MULTIPLIER", "2.25")
        clean_env.setenv("PI_MILEAGE_RATE", "0.70")
        clean_env.setenv("PI_DATA_PATH", "/tmp/pi-data")

        settings = PersonalInjurySettings.from_env()

        assert settings.remote_url == "https://valuation.example.com/api/calc"
        assert settings.remote_api_key == "secret"
        assert settings.remote_timeout == 3.5
        assert settings.default_multiplier == 2.25
        assert settings.mileage_rate == 0.70
        assert settings.data_path == "/tmp/pi-data"

    def test_boolean_flags_parse(self, clean_env):
        from app.config import PersonalInjurySettings

        clean_env.setenv("PI_VALUATION_ENABLED", "false")
        clean_env.setenv("PI_REMOTE_VALUATION_ENABLED", "0")

        settings = PersonalInjurySettings.from_env()

        assert settings.enabled is False
        assert settings.remote_enabled is False

    def test_malformed_number_falls_back_to_default(self, clean_env):
        from app.config import PersonalInjurySettings

        clean_env.setenv("PI_REMOTE_VALUATION_TIMEOUT", "soon")

        settings = PersonalInjurySettings.from_env()

        assert settings.remote_timeout == 8.0

    def test_remote_configured_requires_url_and_flag(self):
        from app.config import PersonalInjurySettings

        assert PersonalInjurySettings(remote_url="").remote_configured is False
        assert PersonalInjurySettings(remote_url="http://x", remote_enabled=False).remote_configured is False
        assert PersonalInjurySettings(remote_url="http://x").remote_configured is True


class TestSettingsValidation:
    """Tests for validate_settings."""

    def test_valid_settings_have_no_errors(self):
        from app.config import PersonalInjurySettings, Settings, validate_settings

        settings = Settings(personal_injury=PersonalInjurySettings(remote_url="http://svc"))

        assert validate_settings(settings) == []

    def test_missing_remote_url_is_reported(self):
        from app.config import PersonalInjurySettings, Settings, validate_settings

        errors = validate_settings(Settings(personal_injury=PersonalInjurySettings()))

        assert any("PI_REMOTE_VALUATION_URL" in e for e in errors)

    def test_disabled_remote_needs_no_url(self):
        from app.config import PersonalInjurySettings, Settings, validate_settings

        settings = Settings(personal_injury=PersonalInjurySettings(remote_enabled=False))

        assert validate_settings(settings) == []

    def test_invalid_numbers_are_reported(self):
        from app.config import PersonalInjurySettings, Settings, validate_settings

        settings = Settings(
            personal_injury=PersonalInjurySettings(
                remote_enabled=False,
                remote_timeout=0,
                default_multiplier=-1,
                mileage_rate=-0.5,
            )
        )

        errors = validate_settings(settings)

        assert len(errors) == 3

    def test_load_settings_builds_all_groups(self, clean_env):
        from app.config import load_settings

        clean_env.setenv("FRONTEND_URL", "https://app.example.com")

        settings = load_settings()

        assert settings.app.frontend_url == "https://app.example.com"
        assert settings.personal_injury.remote_timeout == 8.0


    def test_app_settings_read_log_level_and_frontend(self, clean_env):
        from app.config import AppSettings

        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("FRONTEND_URL", "https://app.example.com")

        settings = AppSettings.from_env()

        assert settings.log_level == "debug"
        assert settings.frontend_url == "https://app.example.com"


class TestUtils:
    """Tests for logging and coercion helpers."""

    def test_setup_logging_returns_named_logger(self):
        from app.utils import LOGGER_NAME, setup_logging

        logger = setup_logging("DEBUG")

        assert isinstance(logger, logging.Logger)
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG

    @pytest.mark.parametrize("value, expected", [
        (12, 12.0),
        ("1500.50", 1500.5),
        (None, 0.0),
        ("", 0.0),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
    ])
    def test_to_number(self, value, expected):
        from app.utils import to_number

        assert to_number(value) == expected

    def test_to_number_custom_default(self):
        from app.utils import to_number

        assert to_number("n/a", default=None) is None
        assert to_number(math.nan, default=-1.0) == -1.0
