"""Expose dependency helpers for the MCP server."""

from .clients import (
    get_channel_service,
    get_credential_manager,
    get_playlist_service,
    get_video_service,
    get_youtube_client,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_channel_service",
    "get_credential_manager",
    "get_playlist_service",
    "get_video_service",
    "get_youtube_client",
]
