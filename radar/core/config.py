"""Configuration management using Pydantic Settings."""

from typing import ClassVar

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from radar.shared.exceptions import ConfigError

# Singleton instance
_settings: "Settings | None" = None


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Only process bootstrap reads this object. Components receive the values
    they need (secret, thresholds) as constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Webhook verification; empty disables signature checks
    webhook_secret: str = ""

    # Detection thresholds
    backdate_suspicious_hours: int = 24
    backdate_critical_hours: int = 72
    streak_inactivity_hours: int = 72
    streak_check_interval_minutes: int = 60
    alert_on_non_conventional: bool = False

    # GitHub REST access for license checks (optional)
    github_token: str = ""

    # Database configuration
    db_host: str = "postgres"
    db_port: int = 5432
    db_name: str = "commit_radar"
    db_user: str = "commit_radar"
    db_password: str = ""

    # HTTP server
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    # Application settings
    log_level: str = "INFO"
    app_version: str = "0.1.0"
    environment: str = "development"

    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        v_upper = v.upper()
        if v_upper not in cls.VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {v}. Must be one of {', '.join(sorted(cls.VALID_LOG_LEVELS))}"
            )
        return v_upper

    @field_validator(
        "backdate_suspicious_hours",
        "backdate_critical_hours",
        "streak_inactivity_hours",
    )
    @classmethod
    def validate_hour_thresholds(cls, v: int) -> int:
        """Validate hour thresholds (1-8760, one year)."""
        if not 1 <= v <= 8760:
            raise ConfigError(f"Hour threshold must be between 1 and 8760, got {v}")
        return v

    @field_validator("streak_check_interval_minutes")
    @classmethod
    def validate_streak_interval(cls, v: int) -> int:
        """Validate streak check interval (1-1440 minutes / 24 hours)."""
        if not 1 <= v <= 1440:
            raise ConfigError(f"Streak check interval must be 1-1440 minutes, got {v}")
        return v

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ConfigError(f"Server port must be between 1 and 65535, got {v}")
        return v

    @model_validator(mode="after")
    def validate_backdate_ordering(self) -> "Settings":
        """Critical backdate threshold may not be below the suspicious one."""
        if self.backdate_critical_hours < self.backdate_suspicious_hours:
            raise ConfigError(
                "backdate_critical_hours "
                f"({self.backdate_critical_hours}) must be >= backdate_suspicious_hours "
                f"({self.backdate_suspicious_hours})"
            )
        return self

    @property
    def signature_verification_enabled(self) -> bool:
        """Whether inbound webhook signatures are checked at all."""
        return bool(self.webhook_secret)

    @property
    def license_checks_enabled(self) -> bool:
        return bool(self.github_token)


def get_settings() -> Settings:
    """Get or create the global Settings instance (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
