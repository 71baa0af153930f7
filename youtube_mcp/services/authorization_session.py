"""
Loopback listener that receives the OAuth redirect from the browser.

A session binds one local port, serves a single callback route through a
throwaway FastAPI app hosted by uvicorn, and resolves exactly once: from the
callback handler or from the timeout. ``release`` is idempotent and always
frees the port.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from dataclasses import dataclass
from html import escape
from http import HTTPStatus
from typing import Awaitable, Callable, Iterator, Optional

import uvicorn
from fastapi import FastAPI, Query
from fastapi.responses import HTMLResponse

from youtube_mcp.models.oauth import AuthOutcome

logger = logging.getLogger(__name__)

EXPIRED_MESSAGE = "This authorization request has expired. Please start it again."


@dataclass(slots=True)
class CallbackResult:
    """What the callback handler decided for one redirect."""

    success: bool
    status_code: int
    html: str


CallbackHandler = Callable[
    [Optional[str], Optional[str], Callable[[], bool]], Awaitable[CallbackResult]
]


def render_page(title: str, message: str) -> str:
    return (
        "<html><body>"
        f"<h1>{escape(title)}</h1><p>{escape(message)}</p>"
        "</body></html>"
    )


class _CallbackServer(uvicorn.Server):
    """uvicorn server that leaves the host process's signal handling alone."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        return None


class LoopbackAuthorizationSession:
    """Own the local callback port for the duration of one authorization."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        path: str,
        handler: CallbackHandler,
        timeout: float,
        shutdown_grace: float = 2.0,
    ) -> None:
        self._host = host
        self._port = port
        self._path = path or "/"
        self._handler = handler
        self._timeout = timeout
        self._shutdown_grace = shutdown_grace
        self._socket: Optional[socket.socket] = None
        self._server: Optional[_CallbackServer] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._result: Optional[asyncio.Future] = None
        self._claimed = False
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def is_waiting(self) -> bool:
        """True until the flow has been resolved by a callback, the timeout or release."""
        return self._result is not None and not self._result.done()

    async def acquire(self) -> AuthOutcome[None]:
        """Bind the port and start serving the callback route."""
        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self._host, self._port))
        except OSError as exc:
            sock.close()
            self._released = True
            return AuthOutcome.failure(
                f"Could not bind {self._host}:{self._port} for the OAuth callback: {exc}"
            )
        sock.setblocking(False)
        self._socket = sock

        loop = asyncio.get_running_loop()
        self._result = loop.create_future()
        config = uvicorn.Config(
            self._build_app(),
            host=self._host,
            port=self._port,
            lifespan="off",
            log_config=None,
            log_level="warning",
            access_log=False,
            timeout_graceful_shutdown=self._shutdown_grace,
        )
        self._server = _CallbackServer(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._serve_task.done():
                await self.release()
                return AuthOutcome.failure("OAuth callback listener exited during startup.")
            await asyncio.sleep(0.01)
        return AuthOutcome.success()

    async def wait(self) -> bool:
        """Block until the callback resolves the flow or the timeout fires."""
        if self._result is None:
            return False
        try:
            return await asyncio.wait_for(asyncio.shield(self._result), self._timeout)
        except asyncio.TimeoutError:
            if self.is_waiting():
                logger.warning(
                    "No OAuth callback received within %s seconds; giving up.", self._timeout
                )
                self._resolve(False)
            return self._result.result()
        finally:
            await self.release()

    async def release(self) -> None:
        """Stop the listener and close the socket. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self._resolve(False)
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            await self._serve_task
        if self._socket is not None:
            self._socket.close()
        logger.debug("OAuth callback listener on port %s released.", self._port)

    def _resolve(self, value: bool) -> None:
        if self._result is not None and not self._result.done():
            self._result.set_result(value)

    def _build_app(self) -> FastAPI:
        app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

        @app.get(self._path, response_class=HTMLResponse)
        async def oauth_callback(
            code: Optional[str] = Query(default=None),
            error: Optional[str] = Query(default=None),
        ) -> HTMLResponse:
            if self._claimed:
                return HTMLResponse(
                    render_page(
                        "Authorization already handled",
                        "This authorization request has already completed.",
                    ),
                    status_code=HTTPStatus.CONFLICT,
                )
            self._claimed = True
            if not self.is_waiting():
                return HTMLResponse(
                    render_page("Authorization expired!", EXPIRED_MESSAGE),
                    status_code=HTTPStatus.REQUEST_TIMEOUT,
                )

            try:
                result = await self._handler(code, error, self.is_waiting)
            except Exception:
                logger.exception("OAuth callback error")
                result = CallbackResult(
                    success=False,
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    html=render_page("Error!", "Something went wrong."),
                )

            self._resolve(result.success)
            return HTMLResponse(result.html, status_code=result.status_code)

        return app


__all__ = [
    "EXPIRED_MESSAGE",
    "CallbackHandler",
    "CallbackResult",
    "LoopbackAuthorizationSession",
    "render_page",
]
