"""Playlist reads (API key) and writes (OAuth) against the YouTube Data API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from google.oauth2.credentials import Credentials

from youtube_mcp.clients.google_auth import OAuthConfigurationError
from youtube_mcp.clients.youtube import (
    NotAuthenticatedError,
    YouTubeAPIError,
    YouTubeDataClient,
)
from youtube_mcp.services.credential_manager import CredentialManager

PRIVACY_STATUSES = ("private", "public", "unlisted")


class PlaylistService:
    """Playlist operations; writes go through the credential manager."""

    def __init__(
        self,
        youtube_client: YouTubeDataClient,
        credential_manager: Optional[CredentialManager] = None,
    ) -> None:
        self._youtube = youtube_client
        self._credentials = credential_manager

    async def _authorized_credentials(self) -> Credentials:
        if self._credentials is None:
            raise OAuthConfigurationError(
                "YOUTUBE_OAUTH_CLIENT_ID and YOUTUBE_OAUTH_CLIENT_SECRET environment "
                "variables are required for write operations."
            )
        credentials = await self._credentials.get_authenticated_client()
        if credentials is None:
            raise NotAuthenticatedError("Not authenticated. Please run youtube_startAuth first.")
        return credentials

    async def create_playlist(
        self,
        title: str,
        description: str = "",
        privacy_status: str = "private",
    ) -> Dict[str, Any]:
        if privacy_status not in PRIVACY_STATUSES:
            raise ValueError(f"privacy_status must be one of {', '.join(PRIVACY_STATUSES)}")
        body = {
            "snippet": {"title": title, "description": description},
            "status": {"privacyStatus": privacy_status},
        }
        try:
            credentials = await self._authorized_credentials()
            return await self._youtube.write(
                lambda yt: yt.playlists().insert(part="snippet,status", body=body),
                credentials=credentials,
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to create playlist: {exc}") from exc

    async def add_to_playlist(
        self, playlist_id: str, video_id: str, position: Optional[int] = None
    ) -> Dict[str, Any]:
        snippet: Dict[str, Any] = {
            "playlistId": playlist_id,
            "resourceId": {"kind": "youtube#video", "videoId": video_id},
        }
        if position is not None:
            snippet["position"] = position
        try:
            credentials = await self._authorized_credentials()
            return await self._youtube.write(
                lambda yt: yt.playlistItems().insert(part="snippet", body={"snippet": snippet}),
                credentials=credentials,
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to add video to playlist: {exc}") from exc

    async def add_videos_to_playlist(
        self, playlist_id: str, video_ids: Sequence[str]
    ) -> Dict[str, List[Any]]:
        """Add videos one by one, collecting per-video failures instead of stopping."""
        results: Dict[str, List[Any]] = {"success": [], "failed": []}
        for video_id in video_ids:
            try:
                await self.add_to_playlist(playlist_id, video_id)
            except YouTubeAPIError as exc:
                results["failed"].append({"videoId": video_id, "error": str(exc)})
            else:
                results["success"].append(video_id)
        return results

    async def get_playlist(self, playlist_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.playlists().list(part="snippet,contentDetails", id=playlist_id)
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get playlist: {exc}") from exc
        items = response.get("items") or []
        return items[0] if items else None

    async def get_playlist_items(
        self, playlist_id: str, max_results: int = 50
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.playlistItems().list(
                    part="snippet,contentDetails",
                    playlistId=playlist_id,
                    maxResults=max_results,
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get playlist items: {exc}") from exc
        return response.get("items") or []

    async def search_playlists(self, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.search().list(
                    part="snippet", q=query, maxResults=max_results, type="playlist"
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to search playlists: {exc}") from exc
        return response.get("items") or []


__all__ = ["PRIVACY_STATUSES", "PlaylistService"]
