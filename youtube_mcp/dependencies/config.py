"""
Dependency utilities for injecting configuration.
"""

from functools import lru_cache

from youtube_mcp.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """Return application settings."""
    return _settings_singleton()


__all__ = ["get_app_settings"]
