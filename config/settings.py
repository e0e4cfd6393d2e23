"""
Configuration settings for DesignFlow portfolio sync.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class ConfigurationError(Exception):
    """Required configuration is missing."""
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "DesignFlow"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Database (SQLite by default, PostgreSQL supported)
    database_url: str = Field(default="sqlite+aiosqlite:///./designflow.db", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    db_pool_size: int = Field(default=5, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=3600, env="DB_POOL_RECYCLE")

    # GitHub
    github_pat: str = Field(default="", env="GITHUB_PAT")
    github_api_url: str = Field(default="https://api.github.com", env="GITHUB_API_URL")
    github_timeout_seconds: int = Field(default=30, env="GITHUB_TIMEOUT_SECONDS")

    # Scheduler Settings
    timezone: str = Field(default="UTC", env="TIMEZONE")
    sync_interval_ms: int = Field(default=180000, env="SYNC_INTERVAL_MS")

    # Notifications
    notification_priority_threshold: int = Field(default=4, env="NOTIFICATION_PRIORITY_THRESHOLD")
    notification_webhook_url: str = Field(default="", env="NOTIFICATION_WEBHOOK_URL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def require_github_token(self) -> str:
        """Return the GitHub token or fail when it is not configured."""
        if not self.github_pat:
            raise ConfigurationError(
                "GITHUB_PAT environment variable is required to start the sync scheduler. "
                "Please set it in your .env file or environment."
            )
        return self.github_pat


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
