"""Engine settings with environment variable overrides."""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidConfigError


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


class SyncSettings(BaseModel):
    """Tunables for one synchronisation run.

    Every field can be overridden with a ``MAILSYNC_<FIELD>`` environment
    variable; explicit keyword arguments win over the environment.
    """

    # Environment values arrive through default factories; validate them too
    model_config = ConfigDict(validate_default=True)

    # Folder pass limits
    max_candidates: int = Field(
        default_factory=lambda: _env_int("MAILSYNC_MAX_CANDIDATES", "50")
    )
    folder_timeout: float = Field(
        default_factory=lambda: _env_float("MAILSYNC_FOLDER_TIMEOUT", "180.0")
    )

    # Retry budget
    max_retries: int = Field(
        default_factory=lambda: _env_int("MAILSYNC_MAX_RETRIES", "2")
    )
    retry_delay: float = Field(
        default_factory=lambda: _env_float("MAILSYNC_RETRY_DELAY", "2.0")
    )

    # Session defaults, used when a mailbox does not set its own
    connect_timeout: float = Field(
        default_factory=lambda: _env_float("MAILSYNC_CONNECT_TIMEOUT", "30.0")
    )
    session_timeout: float = Field(
        default_factory=lambda: _env_float("MAILSYNC_SESSION_TIMEOUT", "180.0")
    )

    # Logging
    log_level: str = Field(
        default_factory=lambda: os.getenv("MAILSYNC_LOG_LEVEL", "INFO")
    )

    @field_validator("max_candidates")
    @classmethod
    def _positive_cap(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_candidates must be >= 1")
        return value

    @field_validator("max_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retries must be >= 0")
        return value

    @field_validator("retry_delay")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("retry_delay must be >= 0")
        return value

    @field_validator("folder_timeout", "connect_timeout", "session_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


# Singleton instance
_settings: Optional[SyncSettings] = None


def get_settings() -> SyncSettings:
    """Get or create the settings singleton.

    Raises:
        InvalidConfigError: If an environment override is invalid
    """
    global _settings
    if _settings is None:
        try:
            _settings = SyncSettings()
        except (ValidationError, ValueError) as e:
            raise InvalidConfigError(
                "Invalid sync settings", details={"error": str(e)}
            ) from e

    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None
