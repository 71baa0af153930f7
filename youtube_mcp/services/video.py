"""Video lookups against the YouTube Data API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from googleapiclient.errors import HttpError

from youtube_mcp.clients.youtube import YouTubeAPIError, YouTubeDataClient

DEFAULT_VIDEO_PARTS = ("snippet", "contentDetails", "statistics")
MAX_COMMENT_RESULTS = 100


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def structure_video(item: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the API item with ``videoId`` and a watch ``url`` added."""
    if not item:
        return None
    raw_id = item.get("id")
    video_id = raw_id.get("videoId") if isinstance(raw_id, dict) else raw_id
    return {
        **item,
        "url": watch_url(video_id) if video_id else None,
        "videoId": video_id,
    }


def structure_videos(items: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    structured = (structure_video(item) for item in items)
    return [video for video in structured if video]


class VideoService:
    """Read-only video operations."""

    def __init__(self, youtube_client: YouTubeDataClient) -> None:
        self._youtube = youtube_client

    async def get_video(
        self, video_id: str, parts: Optional[Sequence[str]] = None
    ) -> Optional[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.videos().list(
                    part=",".join(parts or DEFAULT_VIDEO_PARTS), id=video_id
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get video: {exc}") from exc
        items = response.get("items") or []
        return structure_video(items[0] if items else None)

    async def search_videos(self, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.search().list(
                    part="snippet", q=query, maxResults=max_results, type="video"
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to search videos: {exc}") from exc
        return structure_videos(response.get("items") or [])

    async def get_video_stats(self, video_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.videos().list(part="statistics", id=video_id)
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get video stats: {exc}") from exc
        items = response.get("items") or []
        return items[0].get("statistics") if items else None

    async def get_trending_videos(
        self,
        region_code: str = "US",
        max_results: int = 10,
        video_category_id: str = "",
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "part": ",".join(DEFAULT_VIDEO_PARTS),
            "chart": "mostPopular",
            "regionCode": region_code,
            "maxResults": max_results,
        }
        if video_category_id:
            params["videoCategoryId"] = video_category_id
        try:
            response = await self._youtube.read(lambda yt: yt.videos().list(**params))
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get trending videos: {exc}") from exc
        return structure_videos(response.get("items") or [])

    async def get_related_videos(
        self, video_id: str, max_results: int = 10
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._youtube.read(
                lambda yt: yt.search().list(
                    part="snippet",
                    relatedToVideoId=video_id,
                    maxResults=max_results,
                    type="video",
                )
            )
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get related videos: {exc}") from exc
        return structure_videos(response.get("items") or [])

    async def get_video_comments(
        self,
        video_id: str,
        max_results: int = 20,
        order: str = "relevance",
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "part": "snippet,replies",
            "videoId": video_id,
            "maxResults": min(max_results, MAX_COMMENT_RESULTS),
            "order": order,
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            response = await self._youtube.read(lambda yt: yt.commentThreads().list(**params))
        except HttpError as exc:
            status_code = exc.resp.status if exc.resp is not None else None
            if status_code == 403:
                if "commentsDisabled" in str(exc):
                    raise YouTubeAPIError(f"Comments are disabled for video {video_id}") from exc
                raise YouTubeAPIError(
                    f"Access denied: {exc}. Make sure YouTube Data API v3 is enabled."
                ) from exc
            if status_code == 404:
                raise YouTubeAPIError(f"Video {video_id} not found") from exc
            raise YouTubeAPIError(f"Failed to get comments: {exc}") from exc
        except Exception as exc:
            raise YouTubeAPIError(f"Failed to get comments: {exc}") from exc

        comments = []
        for item in response.get("items") or []:
            thread = item.get("snippet") or {}
            snippet = (thread.get("topLevelComment") or {}).get("snippet") or {}
            comments.append(
                {
                    "commentId": item.get("id"),
                    "author": snippet.get("authorDisplayName") or "Unknown",
                    "authorChannelId": (snippet.get("authorChannelId") or {}).get("value", ""),
                    "authorProfileImage": snippet.get("authorProfileImageUrl", ""),
                    "text": snippet.get("textDisplay", ""),
                    "publishedAt": snippet.get("publishedAt", ""),
                    "updatedAt": snippet.get("updatedAt", ""),
                    "likeCount": snippet.get("likeCount", 0),
                    "replyCount": thread.get("totalReplyCount", 0),
                }
            )

        return {
            "videoId": video_id,
            "comments": comments,
            "nextPageToken": response.get("nextPageToken"),
            "totalResults": (response.get("pageInfo") or {}).get("totalResults"),
        }


__all__ = ["VideoService", "structure_video", "structure_videos", "watch_url"]
