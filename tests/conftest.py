"""Pytest configuration shared across the suite."""

import asyncio
import socket
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "youtube-mcp-token.json"


@pytest.fixture
def free_port() -> int:
    """Reserve-and-release a loopback port for the callback listener."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class FakeTokenEndpoint:
    """Scriptable stand-in for Google's token endpoint."""

    def __init__(self) -> None:
        self.code_response: tuple[int, dict] = (
            200,
            {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600},
        )
        self.refresh_response: tuple[int, dict] = (
            200,
            {"access_token": "access-2", "expires_in": 3600},
        )
        self.requests: list[dict[str, str]] = []
        self.delay = 0.0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if self.delay:
            await asyncio.sleep(self.delay)
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.requests.append(form)
        if form.get("grant_type") == "refresh_token":
            status_code, body = self.refresh_response
        else:
            status_code, body = self.code_response
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def token_endpoint() -> FakeTokenEndpoint:
    return FakeTokenEndpoint()


@pytest.fixture
def oauth_settings_factory(token_path: Path):
    from youtube_mcp.core.config import OAuthSettings

    def _build(**overrides: str) -> OAuthSettings:
        values = {
            "YOUTUBE_OAUTH_CLIENT_ID": "client",
            "YOUTUBE_OAUTH_CLIENT_SECRET": "secret",
            "YOUTUBE_MCP_TOKEN_PATH": str(token_path),
        }
        values.update(overrides)
        return OAuthSettings(**values)

    return _build
