"""YouTube Data API v3 client wrapper."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from googleapiclient.discovery import build

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from google.oauth2.credentials import Credentials
    from googleapiclient.discovery import Resource
    from googleapiclient.http import HttpRequest


class YouTubeConfigurationError(Exception):
    """Raised when a read is attempted without an API key."""


class NotAuthenticatedError(Exception):
    """Raised when a write is attempted without usable OAuth credentials."""


class YouTubeAPIError(Exception):
    """Raised when a YouTube Data API call fails."""


RequestBuilder = Callable[["Resource"], "HttpRequest"]


class YouTubeDataClient:
    """Run Data API requests keyed by an API key (reads) or user credentials (writes).

    The discovery client is blocking, so every request executes in a worker
    thread.
    """

    def __init__(self, api_key: Optional[str] = None) -> None:
        self._api_key = api_key
        self._read_service: Optional["Resource"] = None

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def _get_read_service(self) -> "Resource":
        if not self._api_key:
            raise YouTubeConfigurationError("YOUTUBE_API_KEY environment variable is not set.")
        if self._read_service is None:
            self._read_service = build(
                "youtube", "v3", developerKey=self._api_key, cache_discovery=False
            )
        return self._read_service

    async def read(self, make_request: RequestBuilder) -> Dict[str, Any]:
        """Execute a read request with the API key."""

        def _execute() -> Dict[str, Any]:
            return make_request(self._get_read_service()).execute()

        return await asyncio.to_thread(_execute)

    async def write(
        self, make_request: RequestBuilder, *, credentials: "Credentials"
    ) -> Dict[str, Any]:
        """Execute a request on behalf of the authorized user."""

        def _execute() -> Dict[str, Any]:
            service = build("youtube", "v3", credentials=credentials, cache_discovery=False)
            return make_request(service).execute()

        return await asyncio.to_thread(_execute)


__all__ = [
    "NotAuthenticatedError",
    "YouTubeAPIError",
    "YouTubeConfigurationError",
    "YouTubeDataClient",
]
