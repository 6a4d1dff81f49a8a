"""
Configuration management for Household Calendar.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/household_calendar.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_reload: bool = Field(
        default=True,
        description="Enable auto-reload in development"
    )

    # Timezone Configuration
    timezone: str = Field(
        default="America/Los_Angeles",
        description="Display timezone for offset-bearing event dates (IANA name)"
    )

    # Event caching and refresh backpressure
    event_cache_ttl_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Freshness window for each cached event source"
    )
    min_refresh_interval_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Minimum time between manual refreshes for one household/user"
    )

    # Calendar rendering
    default_event_color: str = Field(
        default="#7B68EE",
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Fallback hex color for events without one"
    )
    month_max_visible_events: int = Field(
        default=3,
        ge=1,
        description="Events shown per month-view cell before '+N more'"
    )
    hour_height_px: int = Field(
        default=60,
        gt=0,
        description="Pixel height of one hour lane in week/day views"
    )
    min_event_block_minutes: int = Field(
        default=20,
        ge=1,
        description="Minimum visual block size for timed events"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if self.min_refresh_interval_seconds <= 0:
            errors.append("MIN_REFRESH_INTERVAL_SECONDS must be positive in production.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.
    Use this function throughout the application to access settings.

    Returns:
        Settings instance loaded from environment

    Example:
        >>> from src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.database_url)
    """
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging for the service.

    Args:
        level: Log level name; defaults to the configured LOG_LEVEL
    """
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
