"""Loopback callback flow exercised over a real local socket."""

from __future__ import annotations

import asyncio
import json
import socket
from pathlib import Path

import httpx
import pytest

from youtube_mcp.clients.google_auth import GoogleOAuthClient
from youtube_mcp.services.authorization_session import (
    CallbackResult,
    LoopbackAuthorizationSession,
)
from youtube_mcp.services.credential_manager import CredentialManager, CredentialState
from youtube_mcp.services.token_store import TokenFileStore


def _port_is_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


async def _wait_until_listening(port: int, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        try:
            _, writer = await asyncio.open_connection("127.0.0.1", port)
        except OSError:
            if asyncio.get_running_loop().time() > deadline:
                raise
            await asyncio.sleep(0.02)
            continue
        writer.close()
        await writer.wait_closed()
        return


async def _get_callback(port: int, **params: str) -> httpx.Response:
    async with httpx.AsyncClient(trust_env=False, timeout=5.0) as client:
        return await client.get(f"http://127.0.0.1:{port}/callback", params=params)


@pytest.fixture
def build_manager(oauth_settings_factory, token_endpoint, token_path: Path, free_port: int):
    def _build(callback_timeout: float = 5.0) -> CredentialManager:
        settings = oauth_settings_factory(
            YOUTUBE_OAUTH_REDIRECT_URI=f"http://127.0.0.1:{free_port}/callback"
        )
        oauth_client = GoogleOAuthClient(settings, transport=token_endpoint.transport)
        return CredentialManager(
            oauth_client, TokenFileStore(token_path), callback_timeout=callback_timeout
        )

    return _build


@pytest.mark.asyncio
async def test_valid_code_persists_token_and_releases_port(
    build_manager, free_port: int, token_path: Path, token_endpoint
) -> None:
    manager = build_manager()

    flow = asyncio.create_task(manager.begin_browser_authorization())
    await _wait_until_listening(free_port)
    assert manager.state() is CredentialState.AWAITING_CALLBACK

    response = await _get_callback(free_port, code="auth-code")

    assert response.status_code == 200
    assert "Authorization successful" in response.text
    assert await asyncio.wait_for(flow, 5) is True
    assert _port_is_free(free_port)
    assert json.loads(token_path.read_text())["access_token"] == "access-1"
    assert token_endpoint.requests[-1]["code"] == "auth-code"
    assert manager.authorization_in_flight is False


@pytest.mark.asyncio
async def test_missing_code_answers_400_and_releases_port(
    build_manager, free_port: int, token_path: Path
) -> None:
    manager = build_manager()

    flow = asyncio.create_task(manager.begin_browser_authorization())
    await _wait_until_listening(free_port)
    response = await _get_callback(free_port, error="access_denied")

    assert response.status_code == 400
    assert "No code received" in response.text
    assert await asyncio.wait_for(flow, 5) is False
    assert _port_is_free(free_port)
    assert not token_path.exists()


@pytest.mark.asyncio
async def test_failed_exchange_answers_500_and_releases_port(
    build_manager, free_port: int, token_endpoint
) -> None:
    token_endpoint.code_response = (400, {"error": "invalid_grant"})
    manager = build_manager()

    flow = asyncio.create_task(manager.begin_browser_authorization())
    await _wait_until_listening(free_port)
    response = await _get_callback(free_port, code="expired-code")

    assert response.status_code == 500
    assert await asyncio.wait_for(flow, 5) is False
    assert _port_is_free(free_port)


@pytest.mark.asyncio
async def test_timeout_without_callback_releases_port(build_manager, free_port: int) -> None:
    manager = build_manager(callback_timeout=0.3)

    result = await asyncio.wait_for(manager.begin_browser_authorization(), 5)

    assert result is False
    assert _port_is_free(free_port)
    assert manager.state() is CredentialState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_second_authorization_is_rejected_while_first_waits(
    build_manager, free_port: int
) -> None:
    manager = build_manager()

    first = asyncio.create_task(manager.begin_browser_authorization())
    await _wait_until_listening(free_port)

    assert await manager.begin_browser_authorization() is False
    assert manager.start_browser_authorization() is False

    response = await _get_callback(free_port, code="auth-code")
    assert response.status_code == 200
    assert await asyncio.wait_for(first, 5) is True
    assert _port_is_free(free_port)


@pytest.mark.asyncio
async def test_port_in_use_fails_the_attempt(build_manager, free_port: int) -> None:
    manager = build_manager()

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", free_port))
        blocker.listen(1)

        assert await manager.begin_browser_authorization() is False

    assert manager.authorization_in_flight is False


@pytest.mark.asyncio
async def test_background_authorization_can_be_awaited(build_manager, free_port: int) -> None:
    manager = build_manager()

    assert manager.start_browser_authorization() is True
    await _wait_until_listening(free_port)
    await _get_callback(free_port, code="auth-code")

    assert await asyncio.wait_for(manager.wait_for_background_authorization(), 5) is True
    assert manager.has_valid_credentials() is True


@pytest.mark.asyncio
async def test_session_handles_only_the_first_callback(free_port: int) -> None:
    calls: list[str | None] = []

    async def _handler(code, error, still_waiting):
        calls.append(code)
        return CallbackResult(success=True, status_code=200, html="<p>ok</p>")

    session = LoopbackAuthorizationSession(
        host="127.0.0.1", port=free_port, path="/callback", handler=_handler, timeout=5
    )
    assert (await session.acquire()).ok

    async with httpx.AsyncClient(trust_env=False, timeout=5.0) as client:
        first = await client.get(f"http://127.0.0.1:{free_port}/callback?code=one")
        second = await client.get(f"http://127.0.0.1:{free_port}/callback?code=two")

    assert first.status_code == 200
    assert second.status_code == 409
    assert await session.wait() is True
    assert calls == ["one"]
    assert _port_is_free(free_port)


@pytest.mark.asyncio
async def test_release_is_idempotent(free_port: int) -> None:
    async def _handler(code, error, still_waiting):  # pragma: no cover - never called
        raise AssertionError("unexpected callback")

    session = LoopbackAuthorizationSession(
        host="127.0.0.1", port=free_port, path="/callback", handler=_handler, timeout=5
    )
    assert (await session.acquire()).ok

    await asyncio.gather(session.release(), session.release())
    await session.release()

    assert session.released
    assert await session.wait() is False
    assert _port_is_free(free_port)


@pytest.mark.asyncio
async def test_exchange_finishing_after_timeout_is_not_persisted(
    build_manager, free_port: int, token_path: Path, token_endpoint
) -> None:
    token_endpoint.delay = 0.8
    manager = build_manager(callback_timeout=0.5)

    flow = asyncio.create_task(manager.begin_browser_authorization())
    await _wait_until_listening(free_port)
    response = await _get_callback(free_port, code="auth-code")

    assert response.status_code == 408
    assert "Authorization successful" not in response.text
    assert await asyncio.wait_for(flow, 5) is False
    assert not token_path.exists()
    assert manager.state() is CredentialState.UNAUTHENTICATED
    assert _port_is_free(free_port)


@pytest.mark.asyncio
async def test_callback_after_timeout_is_not_handled(free_port: int) -> None:
    calls: list[str | None] = []

    async def _handler(code, error, still_waiting):
        calls.append(code)
        return CallbackResult(success=True, status_code=200, html="<p>ok</p>")

    session = LoopbackAuthorizationSession(
        host="127.0.0.1",
        port=free_port,
        path="/callback",
        handler=_handler,
        timeout=0.2,
        shutdown_grace=5.0,
    )
    assert (await session.acquire()).ok
    assert session.is_waiting()

    waiter = asyncio.create_task(session.wait())
    await asyncio.sleep(0.3)
    assert not session.is_waiting()

    async with httpx.AsyncClient(trust_env=False, timeout=5.0) as client:
        try:
            response = await client.get(f"http://127.0.0.1:{free_port}/callback?code=late")
        except httpx.TransportError:
            response = None

    assert await asyncio.wait_for(waiter, 5) is False
    assert calls == []
    if response is not None:
        assert response.status_code == 408
