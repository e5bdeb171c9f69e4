"""Configuration management for Email Open Tracker.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the OPEN_TRACKER_ prefix (e.g., OPEN_TRACKER_SERVICE_BASE_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="OPEN_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Compose agent configuration
    service_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the marker service the compose agent issues pixels from",
    )
    owner_id: str = Field(
        default="test-user-123",
        description="Fixed identifier standing in for the authenticated owner",
    )
    scan_interval_seconds: float = Field(
        default=1.0,
        description="Period of the compose surface discovery timer in seconds",
    )
    issuance_timeout_seconds: int = Field(
        default=10,
        description="Timeout for pixel issuance requests in seconds",
    )
    resend_delay_seconds: float = Field(
        default=0.1,
        description=(
            "Pause between splicing the pixel into the body and re-firing send, "
            "giving the host a chance to re-render"
        ),
    )

    # Marker service configuration
    public_base_url: str | None = Field(
        default=None,
        description="Base URL embedded in issued pixel URLs",
    )
    vercel_url: str | None = Field(
        default=None,
        validation_alias="VERCEL_URL",
        description="Deployment hostname; used for pixel URLs when public_base_url is unset",
    )
    host: str = Field(default="127.0.0.1", description="Interface the service binds to")
    port: int = Field(default=3000, description="Port the service listens on")
    database_url: str = Field(
        default="sqlite:///email_tracking.sqlite3",
        description="SQLAlchemy database URL for tracking records",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the issuance API",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    def pixel_base_url(self) -> str:
        """Return the base URL that issued pixel URLs point at."""
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        if self.vercel_url:
            return f"https://{self.vercel_url}"
        return f"http://localhost:{self.port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
