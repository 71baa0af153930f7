"""
Entrypoint for the YouTube MCP server.
"""

from __future__ import annotations

import asyncio

from youtube_mcp.core.logging import configure_logging
from youtube_mcp.dependencies import (
    get_app_settings,
    get_channel_service,
    get_credential_manager,
    get_playlist_service,
    get_video_service,
)
from youtube_mcp.server import YouTubeMCPServer


def create_server() -> YouTubeMCPServer:
    """Factory for the MCP server."""
    settings = get_app_settings()
    configure_logging(settings.log_level)

    return YouTubeMCPServer(
        video_service=get_video_service(),
        channel_service=get_channel_service(),
        playlist_service=get_playlist_service(),
        credential_manager=get_credential_manager(),
    )


def main() -> None:
    asyncio.run(create_server().run())


if __name__ == "__main__":
    main()


__all__ = ["create_server", "main"]
