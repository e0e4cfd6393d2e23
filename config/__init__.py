"""Application configuration."""

from .settings import settings, get_settings, Settings, ConfigurationError

__all__ = ["settings", "get_settings", "Settings", "ConfigurationError"]
