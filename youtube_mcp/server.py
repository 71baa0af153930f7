"""
YouTube MCP Server - tool registration and dispatch.

Exposes YouTube Data API lookups and OAuth-backed playlist writes as MCP tools.
Every tool answers with a JSON text block.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool, ToolAnnotations

from youtube_mcp.clients.google_auth import OAuthConfigurationError
from youtube_mcp.clients.youtube import (
    NotAuthenticatedError,
    YouTubeAPIError,
    YouTubeConfigurationError,
)
from youtube_mcp.services.channel import ChannelService
from youtube_mcp.services.credential_manager import CredentialManager
from youtube_mcp.services.playlist import PRIVACY_STATUSES, PlaylistService
from youtube_mcp.services.video import VideoService

logger = logging.getLogger(__name__)

SERVER_NAME = "youtube-mcp"
SERVER_VERSION = "0.1.0"

NOT_CONFIGURED_MESSAGE = (
    "OAuth not configured. Set YOUTUBE_OAUTH_CLIENT_ID and "
    "YOUTUBE_OAUTH_CLIENT_SECRET environment variables."
)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[CallToolResult]]


class ToolCallError(Exception):
    """Carries a JSON error body back through the MCP runtime."""


def _json_result(payload: Any, *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2))],
        isError=is_error,
    )


def _error_result(message: str) -> CallToolResult:
    return _json_result({"error": message}, is_error=True)


def _require(args: Dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value in (None, ""):
        raise ValueError(f"Missing required argument: {key}")
    return value


def _schema(properties: Dict[str, Any], required: Optional[list[str]] = None) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required or []}


_STRING = {"type": "string"}
_INTEGER = {"type": "integer"}

_READ = ToolAnnotations(readOnlyHint=True, idempotentHint=True)
_WRITE = ToolAnnotations(readOnlyHint=False, idempotentHint=False)


TOOLS = [
    Tool(
        name="videos_getVideo",
        annotations=_READ,
        description="Get detailed information about a YouTube video including URL",
        inputSchema=_schema(
            {
                "videoId": {**_STRING, "description": "The YouTube video ID"},
                "parts": {
                    "type": "array",
                    "items": _STRING,
                    "description": "Parts of the video to retrieve",
                },
            },
            ["videoId"],
        ),
    ),
    Tool(
        name="videos_searchVideos",
        annotations=_READ,
        description="Search for videos on YouTube and return results with URLs",
        inputSchema=_schema(
            {
                "query": {**_STRING, "description": "Search query"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
            },
            ["query"],
        ),
    ),
    Tool(
        name="videos_getVideoStats",
        annotations=_READ,
        description="Get view, like and comment counts for a video",
        inputSchema=_schema(
            {"videoId": {**_STRING, "description": "The YouTube video ID"}}, ["videoId"]
        ),
    ),
    Tool(
        name="videos_getTrendingVideos",
        annotations=_READ,
        description="Get the most popular videos for a region",
        inputSchema=_schema(
            {
                "regionCode": {**_STRING, "description": "ISO 3166-1 region code (default: US)"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
                "videoCategoryId": {**_STRING, "description": "Restrict to a video category"},
            }
        ),
    ),
    Tool(
        name="videos_getRelatedVideos",
        annotations=_READ,
        description="Get videos related to a specific video",
        inputSchema=_schema(
            {
                "videoId": {**_STRING, "description": "The YouTube video ID"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
            },
            ["videoId"],
        ),
    ),
    Tool(
        name="videos_getComments",
        annotations=_READ,
        description="Get top-level comments for a video",
        inputSchema=_schema(
            {
                "videoId": {**_STRING, "description": "The YouTube video ID"},
                "maxResults": {**_INTEGER, "description": "Maximum number of comments (max 100)"},
                "order": {
                    **_STRING,
                    "enum": ["relevance", "time"],
                    "description": "Sort order (default: relevance)",
                },
                "pageToken": {**_STRING, "description": "Token for the next page of results"},
            },
            ["videoId"],
        ),
    ),
    Tool(
        name="channels_getChannel",
        annotations=_READ,
        description="Get information about a YouTube channel",
        inputSchema=_schema(
            {"channelId": {**_STRING, "description": "The YouTube channel ID"}}, ["channelId"]
        ),
    ),
    Tool(
        name="channels_listVideos",
        annotations=_READ,
        description="Get videos from a specific channel",
        inputSchema=_schema(
            {
                "channelId": {**_STRING, "description": "The YouTube channel ID"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
            },
            ["channelId"],
        ),
    ),
    Tool(
        name="playlists_getPlaylist",
        annotations=_READ,
        description="Get information about a YouTube playlist",
        inputSchema=_schema(
            {"playlistId": {**_STRING, "description": "The YouTube playlist ID"}}, ["playlistId"]
        ),
    ),
    Tool(
        name="playlists_getPlaylistItems",
        annotations=_READ,
        description="Get videos in a YouTube playlist",
        inputSchema=_schema(
            {
                "playlistId": {**_STRING, "description": "The YouTube playlist ID"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
            },
            ["playlistId"],
        ),
    ),
    Tool(
        name="playlists_search",
        annotations=_READ,
        description="Search for playlists on YouTube",
        inputSchema=_schema(
            {
                "query": {**_STRING, "description": "Search query"},
                "maxResults": {**_INTEGER, "description": "Maximum number of results to return"},
            },
            ["query"],
        ),
    ),
    Tool(
        name="youtube_checkAuth",
        annotations=_READ,
        description="Check if OAuth is configured and we have valid credentials for write operations",
        inputSchema=_schema({}),
    ),
    Tool(
        name="youtube_getAuthUrl",
        annotations=_READ,
        description="Get the OAuth authorization URL. User needs to visit this URL to authorize the app.",
        inputSchema=_schema({}),
    ),
    Tool(
        name="youtube_startAuth",
        annotations=_WRITE,
        description="Start OAuth authentication flow. Opens a local server and waits for callback.",
        inputSchema=_schema({}),
    ),
    Tool(
        name="youtube_exchangeCode",
        annotations=_WRITE,
        description="Exchange an authorization code obtained from the redirect for tokens",
        inputSchema=_schema(
            {"code": {**_STRING, "description": "The authorization code"}}, ["code"]
        ),
    ),
    Tool(
        name="playlists_create",
        annotations=_WRITE,
        description="Create a new YouTube playlist (requires OAuth authentication)",
        inputSchema=_schema(
            {
                "title": {**_STRING, "description": "The playlist title"},
                "description": {**_STRING, "description": "The playlist description"},
                "privacyStatus": {
                    **_STRING,
                    "enum": list(PRIVACY_STATUSES),
                    "description": "Privacy status (default: private)",
                },
            },
            ["title"],
        ),
    ),
    Tool(
        name="playlists_addVideo",
        annotations=_WRITE,
        description="Add a video to a YouTube playlist (requires OAuth authentication)",
        inputSchema=_schema(
            {
                "playlistId": {**_STRING, "description": "The playlist ID"},
                "videoId": {**_STRING, "description": "The video ID to add"},
                "position": {**_INTEGER, "description": "Position in playlist (0-indexed)"},
            },
            ["playlistId", "videoId"],
        ),
    ),
    Tool(
        name="playlists_addVideos",
        annotations=_WRITE,
        description="Add multiple videos to a YouTube playlist (requires OAuth authentication)",
        inputSchema=_schema(
            {
                "playlistId": {**_STRING, "description": "The playlist ID"},
                "videoIds": {
                    "type": "array",
                    "items": _STRING,
                    "description": "Array of video IDs to add",
                },
            },
            ["playlistId", "videoIds"],
        ),
    ),
]


class YouTubeMCPServer:
    """YouTube MCP Server wiring services to tool handlers."""

    def __init__(
        self,
        video_service: VideoService,
        channel_service: ChannelService,
        playlist_service: PlaylistService,
        credential_manager: Optional[CredentialManager] = None,
    ) -> None:
        self.videos = video_service
        self.channels = channel_service
        self.playlists = playlist_service
        self.credentials = credential_manager

        self._handlers: Dict[str, ToolHandler] = {
            "videos_getVideo": self._get_video,
            "videos_searchVideos": self._search_videos,
            "videos_getVideoStats": self._get_video_stats,
            "videos_getTrendingVideos": self._get_trending_videos,
            "videos_getRelatedVideos": self._get_related_videos,
            "videos_getComments": self._get_comments,
            "channels_getChannel": self._get_channel,
            "channels_listVideos": self._list_channel_videos,
            "playlists_getPlaylist": self._get_playlist,
            "playlists_getPlaylistItems": self._get_playlist_items,
            "playlists_search": self._search_playlists,
            "youtube_checkAuth": self._check_auth,
            "youtube_getAuthUrl": self._get_auth_url,
            "youtube_startAuth": self._start_auth,
            "youtube_exchangeCode": self._exchange_code,
            "playlists_create": self._create_playlist,
            "playlists_addVideo": self._add_video,
            "playlists_addVideos": self._add_videos,
        }

        self.server = Server(SERVER_NAME, version=SERVER_VERSION)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Setup MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return TOOLS

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            result = await self.dispatch(name, arguments or {})
            if result.isError:
                raise ToolCallError(result.content[0].text)
            return result.content

    async def dispatch(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        handler = self._handlers.get(name)
        if handler is None:
            return _error_result(f"Unknown tool: {name}")
        try:
            return await handler(arguments)
        except (
            ValueError,
            OAuthConfigurationError,
            NotAuthenticatedError,
            YouTubeAPIError,
            YouTubeConfigurationError,
        ) as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            return _error_result(str(exc))

    async def _get_video(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.videos.get_video(_require(args, "videoId"), args.get("parts"))
        )

    async def _search_videos(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.videos.search_videos(
                _require(args, "query"), int(args.get("maxResults") or 10)
            )
        )

    async def _get_video_stats(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(await self.videos.get_video_stats(_require(args, "videoId")))

    async def _get_trending_videos(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.videos.get_trending_videos(
                region_code=args.get("regionCode") or "US",
                max_results=int(args.get("maxResults") or 10),
                video_category_id=args.get("videoCategoryId") or "",
            )
        )

    async def _get_related_videos(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.videos.get_related_videos(
                _require(args, "videoId"), int(args.get("maxResults") or 10)
            )
        )

    async def _get_comments(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.videos.get_video_comments(
                _require(args, "videoId"),
                max_results=int(args.get("maxResults") or 20),
                order=args.get("order") or "relevance",
                page_token=args.get("pageToken"),
            )
        )

    async def _get_channel(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(await self.channels.get_channel(_require(args, "channelId")))

    async def _list_channel_videos(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.channels.list_videos(
                _require(args, "channelId"), int(args.get("maxResults") or 50)
            )
        )

    async def _get_playlist(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(await self.playlists.get_playlist(_require(args, "playlistId")))

    async def _get_playlist_items(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.playlists.get_playlist_items(
                _require(args, "playlistId"), int(args.get("maxResults") or 50)
            )
        )

    async def _search_playlists(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.playlists.search_playlists(
                _require(args, "query"), int(args.get("maxResults") or 10)
            )
        )

    async def _check_auth(self, args: Dict[str, Any]) -> CallToolResult:
        configured = self.credentials is not None
        has_credentials = configured and self.credentials.has_valid_credentials()
        if not configured:
            message = NOT_CONFIGURED_MESSAGE
        elif not has_credentials:
            message = (
                "OAuth configured but not authenticated. "
                "Use youtube_getAuthUrl to get authorization URL."
            )
        else:
            message = "Ready for write operations!"
        return _json_result(
            {
                "oauthConfigured": configured,
                "hasValidCredentials": has_credentials,
                "message": message,
            }
        )

    async def _get_auth_url(self, args: Dict[str, Any]) -> CallToolResult:
        if self.credentials is None:
            return _error_result(NOT_CONFIGURED_MESSAGE)
        return _json_result(
            {
                "authUrl": self.credentials.get_authorization_url(),
                "instructions": (
                    "Visit this URL in your browser to authorize. After authorization, "
                    "the page will show a success message."
                ),
            }
        )

    async def _start_auth(self, args: Dict[str, Any]) -> CallToolResult:
        if self.credentials is None:
            return _error_result(NOT_CONFIGURED_MESSAGE)
        auth_url = self.credentials.get_authorization_url()
        if not self.credentials.start_browser_authorization():
            return _json_result(
                {
                    "status": "already_waiting",
                    "authUrl": auth_url,
                    "instructions": "An authorization is already in progress. Finish it in your browser.",
                }
            )
        return _json_result(
            {
                "status": "waiting",
                "authUrl": auth_url,
                "instructions": (
                    "Visit this URL in your browser and authorize the app. "
                    f"The server is listening on {self.credentials.redirect_uri}"
                ),
            }
        )

    async def _exchange_code(self, args: Dict[str, Any]) -> CallToolResult:
        if self.credentials is None:
            return _error_result(NOT_CONFIGURED_MESSAGE)
        success = await self.credentials.exchange_authorization_code(_require(args, "code"))
        if not success:
            return _error_result("Failed to exchange authorization code. Request a new one.")
        return _json_result({"success": True, "message": "Ready for write operations!"})

    async def _create_playlist(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.playlists.create_playlist(
                title=_require(args, "title"),
                description=args.get("description") or "",
                privacy_status=args.get("privacyStatus") or "private",
            )
        )

    async def _add_video(self, args: Dict[str, Any]) -> CallToolResult:
        position = args.get("position")
        return _json_result(
            await self.playlists.add_to_playlist(
                _require(args, "playlistId"),
                _require(args, "videoId"),
                position=int(position) if position is not None else None,
            )
        )

    async def _add_videos(self, args: Dict[str, Any]) -> CallToolResult:
        return _json_result(
            await self.playlists.add_videos_to_playlist(
                _require(args, "playlistId"), list(_require(args, "videoIds"))
            )
        )

    async def run(self) -> None:
        """Run the MCP server over stdio."""
        async with stdio_server() as (read_stream, write_stream):
            logger.info("YouTube MCP Server started successfully")
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


__all__ = ["TOOLS", "ToolCallError", "YouTubeMCPServer"]
