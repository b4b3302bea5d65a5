"""
Application configuration.

Settings are plain dataclasses populated from environment variables (a local
``.env`` file is honoured through python-dotenv). Each settings group exposes a
``from_env()`` constructor so tests can build them directly or via monkeypatched
environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_PATH = Path(__file__).parent.parent / "data"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class PersonalInjurySettings:
    """Settings for the personal-injury valuation engine."""

    enabled: bool = True
    remote_enabled: bool = True
    remote_url: str = ""
    remote_api_key: Optional[str] = None
    # Seconds to wait on the remote valuation service before falling back
    remote_timeout: float = 8.0
    default_multiplier: float = 2.0
    mileage_rate: float = 0.67
    data_path: str = str(DEFAULT_DATA_PATH)

    @classmethod
    def from_env(cls) -> "PersonalInjurySettings":
        return cls(
            enabled=_env_bool("PI_VALUATION_ENABLED", True),
            remote_enabled=_env_bool("PI_REMOTE_VALUATION_ENABLED", True),
            remote_url=os.getenv("PI_REMOTE_VALUATION_URL", ""),
            remote_api_key=os.getenv("PI_REMOTE_VALUATION_API_KEY") or None,
            remote_timeout=_env_float("PI_REMOTE_VALUATION_TIMEOUT", 8.0),
            default_multiplier=_env_float("PI_DEFAULT_MULTIPLIER", 2.0),
            mileage_rate=_env_float("PI_MILEAGE_RATE", 0.67),
            data_path=os.getenv("PI_DATA_PATH", str(DEFAULT_DATA_PATH)),
        )

    @property
    def remote_configured(self) -> bool:
        return bool(self.remote_enabled and self.remote_url)


@dataclass
class AppSettings:
    log_level: str = "INFO"
    frontend_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            frontend_url=os.getenv("FRONTEND_URL") or None,
        )


@dataclass
class Settings:
    app: AppSettings = field(default_factory=AppSettings)
    personal_injury: PersonalInjurySettings = field(default_factory=PersonalInjurySettings)


def load_settings() -> Settings:
    """Load all settings groups from the environment."""
    return Settings(
        app=AppSettings.from_env(),
        personal_injury=PersonalInjurySettings.from_env(),
    )


def validate_settings(settings: Settings) -> List[str]:
    """Return a list of human-readable configuration problems (empty if OK)."""
    errors: List[str] = []
    pi = settings.personal_injury

    if pi.remote_enabled and not pi.remote_url:
        errors.append(
            "PI_REMOTE_VALUATION_URL is not set; case values will use the local formula only."
        )
    if pi.remote_timeout <= 0:
        errors.append("PI_REMOTE_VALUATION_TIMEOUT must be greater than 0.")
    if pi.default_multiplier <= 0:
        errors.append("PI_DEFAULT_MULTIPLIER must be greater than 0.")
    if pi.mileage_rate < 0:
        errors.append("PI_MILEAGE_RATE must not be negative.")

    return errors
