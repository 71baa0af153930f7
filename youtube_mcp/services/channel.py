"""Channel lookups against the YouTube Data API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from youtube_mcp.clients.youtube import YouTubeAPIError, YouTubeDataClient
from youtube_mcp.services.video import structure_videos


class ChannelService:
    """Read-only channel operations."""

    def __init__(self, youtube_client: YouTubeDataClient) -> None:
        self._youtube = youtube_client

    async def get_channel(self, channel_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.channels().list(
                    part="snippet,statistics,contentDetails", id=channel_id
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get channel: {exc}") from exc
        items = response.get("items") or []
        return items[0] if items else None

    async def list_videos(self, channel_id: str, max_results: int = 50) -> List[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.search().list(
                    part="snippet",
                    channelId=channel_id,
                    maxResults=max_results,
                    order="date",
                    type="video",
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to list channel videos: {exc}") from exc
        return structure_videos(response.get("items") or [])


__all__ = ["ChannelService"]
