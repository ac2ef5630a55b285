"""
Dockform Settings - Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

# Find project root (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent


class DockformSettings(BaseSettings):
    """
    Dockform configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)

    All durations are in seconds.
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="DF_",  # All Dockform env vars must start with DF_
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: DF_LOG_LEVEL)",
    )

    # Docker Configuration
    docker_host: str | None = Field(
        default=None,
        description="Docker daemon URL; falls back to DOCKER_HOST / the local socket (env: DF_DOCKER_HOST)",
    )

    # State Configuration
    state_file: Path = Field(
        default=Path(".dockform/state.pkl"),
        description="Where managed resource state is persisted (env: DF_STATE_FILE)",
    )

    # Network convergence
    network_timeout: float = Field(default=30.0, description="env: DF_NETWORK_TIMEOUT")
    network_min_interval: float = Field(default=5.0, description="env: DF_NETWORK_MIN_INTERVAL")
    network_delay: float = Field(default=2.0, description="env: DF_NETWORK_DELAY")

    # Volume convergence
    volume_timeout: float = Field(default=30.0, description="env: DF_VOLUME_TIMEOUT")
    volume_min_interval: float = Field(default=5.0, description="env: DF_VOLUME_MIN_INTERVAL")
    volume_delay: float = Field(default=2.0, description="env: DF_VOLUME_DELAY")

    # Service convergence
    service_read_timeout: float = Field(default=30.0, description="env: DF_SERVICE_READ_TIMEOUT")
    service_read_delay: float = Field(default=2.0, description="env: DF_SERVICE_READ_DELAY")
    service_min_interval: float = Field(default=5.0, description="env: DF_SERVICE_MIN_INTERVAL")
    service_update_delay: float = Field(default=7.0, description="env: DF_SERVICE_UPDATE_DELAY")

    max_poll_interval: float = Field(
        default=10.0,
        description="Upper bound for the growing poll cadence (env: DF_MAX_POLL_INTERVAL)",
    )

    @model_validator(mode="after")
    def _check_durations(self) -> "DockformSettings":
        for name in (
            "network_timeout", "network_min_interval", "network_delay",
            "volume_timeout", "volume_min_interval", "volume_delay",
            "service_read_timeout", "service_read_delay",
            "service_min_interval", "service_update_delay", "max_poll_interval",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        return self


# Global settings instance
_settings: DockformSettings | None = None


def get_settings() -> DockformSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        DockformSettings instance
    """
    global _settings
    if _settings is None:
        _settings = DockformSettings()
    return _settings


def reload_settings() -> DockformSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh DockformSettings instance
    """
    global _settings
    _settings = DockformSettings()
    return _settings
