"""
Factory functions providing the shared clients and services the MCP server uses.
"""

from functools import lru_cache
from typing import Optional

from youtube_mcp.clients import YouTubeDataClient
from youtube_mcp.dependencies.config import get_app_settings
from youtube_mcp.services import (
    ChannelService,
    CredentialManager,
    PlaylistService,
    VideoService,
)


@lru_cache()
def get_youtube_client() -> YouTubeDataClient:
    """Provide the Data API client keyed by the configured API key."""
    settings = get_app_settings()
    return YouTubeDataClient(api_key=settings.youtube.api_key)


@lru_cache()
def get_credential_manager() -> Optional[CredentialManager]:
    """Provide the OAuth credential manager, or None when OAuth is not configured."""
    settings = get_app_settings()
    if not settings.oauth.is_configured:
        return None
    return CredentialManager.from_settings(settings.oauth)


@lru_cache()
def get_video_service() -> VideoService:
    return VideoService(get_youtube_client())


@lru_cache()
def get_channel_service() -> ChannelService:
    return ChannelService(get_youtube_client())


@lru_cache()
def get_playlist_service() -> PlaylistService:
    """Provide playlist operations; writes are backed by the credential manager."""
    return PlaylistService(get_youtube_client(), get_credential_manager())


__all__ = [
    "get_channel_service",
    "get_credential_manager",
    "get_playlist_service",
    "get_video_service",
    "get_youtube_client",
]
