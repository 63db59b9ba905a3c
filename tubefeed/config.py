"""Configuration settings for the feed service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service info
    service_name: str = "tubefeed"
    version: str = "0.1.0"
    port: int = 8080

    # PostgreSQL
    database_url: str = ""
    db_min_connections: int = 1
    db_max_connections: int = 5

    # YouTube API
    youtube_api_key: str = ""  # Single key, tried first when set
    youtube_api_keys: str = ""  # Comma-separated, in rotation order

    # Ingestion
    search_query: str = "football in:title OR football in:description"
    max_results_per_request: int = Field(default=50, ge=1, le=50)
    poll_interval_seconds: float = Field(default=10.0, ge=0)
    retry_backoff_seconds: float = Field(default=10.0, ge=0)

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    @property
    def api_keys(self) -> list[str]:
        """All configured API keys, de-duplicated, in rotation order."""
        keys = []
        candidates = [self.youtube_api_key, *self.youtube_api_keys.split(",")]
        for candidate in candidates:
            key = candidate.strip()
            if key and key not in keys:
                keys.append(key)
        return keys

    def require_runtime_config(self) -> None:
        """
        Fail fast when the service cannot run.

        Raises:
            ConfigurationError: If the database DSN or every API key is missing
        """
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")
        if not self.api_keys:
            raise ConfigurationError(
                "No YouTube API key configured (set YOUTUBE_API_KEYS or YOUTUBE_API_KEY)"
            )


# Global settings instance
settings = Settings()
