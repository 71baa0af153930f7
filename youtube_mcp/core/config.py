"""
Application configuration models and helpers.

Centralizes settings management so the MCP server, the credential manager and
the environment check script share a consistent configuration surface.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

TOKEN_FILE_NAME = "youtube-mcp-token.json"
DEFAULT_REDIRECT_URI = "http://localhost:8888/callback"
DEFAULT_SCOPES = ("https://www.googleapis.com/auth/youtube",)


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def default_config_dir() -> Path:
    """Return the per-user directory the token file lives in."""
    base = os.environ.get("APPDATA") or os.environ.get("HOME") or "."
    return Path(base)


def default_token_path() -> Path:
    return default_config_dir() / TOKEN_FILE_NAME


class YouTubeSettings(BaseSettings):
    """Configuration required for read-only YouTube Data API access."""

    model_config = SettingsConfigDict(extra="ignore")

    api_key: Optional[str] = Field(
        None,
        validation_alias="YOUTUBE_API_KEY",
        description="API key used for read operations.",
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration for write operations."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: Optional[str] = Field(None, validation_alias="YOUTUBE_OAUTH_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="YOUTUBE_OAUTH_CLIENT_SECRET"
    )
    redirect_uri: AnyHttpUrl = Field(
        DEFAULT_REDIRECT_URI, validation_alias="YOUTUBE_OAUTH_REDIRECT_URI"
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        DEFAULT_SCOPES, validation_alias="YOUTUBE_OAUTH_SCOPES"
    )
    token_path: Path = Field(
        default_factory=default_token_path,
        validation_alias="YOUTUBE_MCP_TOKEN_PATH",
        description="Location of the persisted token record.",
    )
    callback_timeout: float = Field(
        300.0,
        validation_alias="YOUTUBE_OAUTH_CALLBACK_TIMEOUT",
        description="Seconds to wait for the browser redirect before giving up.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class AppSettings(BaseSettings):
    """Root settings object for the MCP server."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_REDIRECT_URI",
    "DEFAULT_SCOPES",
    "OAuthSettings",
    "TOKEN_FILE_NAME",
    "YouTubeSettings",
    "default_config_dir",
    "default_token_path",
    "get_settings",
]
