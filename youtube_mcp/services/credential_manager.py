"""
OAuth credential lifecycle for YouTube write operations.

The manager persists a single token record, refreshes it lazily when it has
expired, and runs the browser authorization-code flow through a loopback
callback listener. None of its public operations raise on provider or disk
failures: they log and return ``False`` or ``None`` so the tool layer can tell
the caller to authorize again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Callable, Optional
from urllib.parse import urlparse

from google.oauth2.credentials import Credentials
from pydantic import ValidationError

from youtube_mcp.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from youtube_mcp.core.config import OAuthSettings
from youtube_mcp.models.oauth import AuthOutcome, StoredOAuthToken, now_ms
from youtube_mcp.services.authorization_session import (
    EXPIRED_MESSAGE,
    CallbackResult,
    LoopbackAuthorizationSession,
    render_page,
)
from youtube_mcp.services.token_store import TokenFileStore

logger = logging.getLogger(__name__)


class CredentialState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRED_PENDING_REFRESH = "expired_pending_refresh"
    AWAITING_CALLBACK = "awaiting_callback"


class CredentialManager:
    """Owns the OAuth token record and the flows that create or refresh it."""

    def __init__(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenFileStore,
        *,
        callback_timeout: float = 300.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._oauth = oauth_client
        self._store = token_store
        self._callback_timeout = callback_timeout
        self._clock = clock
        self._in_flight = False
        self._background: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, oauth_settings: OAuthSettings) -> "CredentialManager":
        """Build a manager; raises ``OAuthConfigurationError`` without a client id/secret."""
        return cls(
            GoogleOAuthClient(oauth_settings),
            TokenFileStore(oauth_settings.token_path),
            callback_timeout=oauth_settings.callback_timeout,
        )

    @property
    def authorization_in_flight(self) -> bool:
        return self._in_flight

    @property
    def redirect_uri(self) -> str:
        return self._oauth.redirect_uri

    def state(self) -> CredentialState:
        if self._in_flight:
            return CredentialState.AWAITING_CALLBACK
        loaded = self._store.load()
        if not loaded.ok:
            return CredentialState.UNAUTHENTICATED
        if loaded.value.is_expired(self._clock()):
            return CredentialState.EXPIRED_PENDING_REFRESH
        return CredentialState.AUTHENTICATED

    def has_valid_credentials(self) -> bool:
        """Return whether a token record exists and parses. Expiry is not checked."""
        return self._store.load().ok

    def get_authorization_url(self) -> str:
        return self._oauth.build_authorization_url(access_type="offline")

    async def get_authenticated_client(self) -> Optional[Credentials]:
        """Return credentials for the stored token, refreshing it first if it expired."""
        loaded = self._store.load()
        if not loaded.ok:
            return None

        record = loaded.value
        if record.is_expired(self._clock()):
            refreshed = await self._refresh(record)
            if not refreshed.ok:
                logger.error(
                    "Token refresh failed, need to re-authenticate: %s", refreshed.error
                )
                return None
            record = refreshed.value

        return self._build_credentials(record)

    async def exchange_authorization_code(self, code: str) -> bool:
        """Exchange a code obtained out of band and persist the resulting token."""
        outcome = await self._exchange(code)
        if not outcome.ok:
            logger.error("Failed to exchange code: %s", outcome.error)
        return outcome.ok

    async def begin_browser_authorization(self) -> bool:
        """Run the loopback flow; resolves ``True`` only once a token is persisted."""
        if self._in_flight:
            logger.warning("An OAuth authorization is already waiting for its callback.")
            return False
        self._in_flight = True
        try:
            redirect = urlparse(self.redirect_uri)
            session = LoopbackAuthorizationSession(
                host=redirect.hostname or "localhost",
                port=redirect.port or 80,
                path=redirect.path or "/callback",
                handler=self._handle_callback,
                timeout=self._callback_timeout,
            )
            acquired = await session.acquire()
            if not acquired.ok:
                logger.error(acquired.error)
                return False

            logger.info("OAuth server listening on %s", self.redirect_uri)
            logger.info("Please visit: %s", self.get_authorization_url())
            return await session.wait()
        finally:
            self._in_flight = False

    def start_browser_authorization(self) -> bool:
        """Schedule ``begin_browser_authorization`` on the running loop and return at once."""
        if self._in_flight or (self._background is not None and not self._background.done()):
            return False
        self._background = asyncio.get_running_loop().create_task(
            self.begin_browser_authorization()
        )
        return True

    async def wait_for_background_authorization(self) -> bool:
        if self._background is None:
            return False
        return await self._background

    async def _handle_callback(
        self,
        code: Optional[str],
        error: Optional[str],
        still_waiting: Callable[[], bool],
    ) -> CallbackResult:
        if not code:
            logger.warning("OAuth callback carried no code (error=%s).", error)
            return CallbackResult(
                success=False,
                status_code=HTTPStatus.BAD_REQUEST,
                html=render_page("Authorization failed!", "No code received."),
            )

        outcome = await self._exchange(code, still_waiting=still_waiting)
        if not outcome.ok and not still_waiting():
            logger.warning("OAuth callback finished after the flow expired: %s", outcome.error)
            return CallbackResult(
                success=False,
                status_code=HTTPStatus.REQUEST_TIMEOUT,
                html=render_page("Authorization expired!", EXPIRED_MESSAGE),
            )
        if not outcome.ok:
            logger.error("OAuth callback error: %s", outcome.error)
            return CallbackResult(
                success=False,
                status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                html=render_page("Error!", "Something went wrong."),
            )

        return CallbackResult(
            success=True,
            status_code=HTTPStatus.OK,
            html=render_page(
                "Authorization successful!",
                "You can close this window and return to your assistant.",
            ),
        )

    async def _exchange(
        self, code: str, *, still_waiting: Optional[Callable[[], bool]] = None
    ) -> AuthOutcome[StoredOAuthToken]:
        issued_at = self._clock()
        try:
            payload = await self._oauth.exchange_authorization_code(code)
            record = StoredOAuthToken.from_token_response(payload, issued_at_ms=issued_at)
        except (OAuthTokenExchangeError, ValidationError) as exc:
            return AuthOutcome.failure(str(exc))

        # The flow may have timed out while the token endpoint was answering.
        if still_waiting is not None and not still_waiting():
            return AuthOutcome.failure("Authorization expired before the token was saved.")

        saved = self._store.save(record)
        if not saved.ok:
            return AuthOutcome.failure(saved.error or "Could not persist token.")
        return AuthOutcome.success(record)

    async def _refresh(self, record: StoredOAuthToken) -> AuthOutcome[StoredOAuthToken]:
        if not record.refresh_token:
            return AuthOutcome.failure("No refresh token stored.")

        issued_at = self._clock()
        try:
            payload = await self._oauth.refresh_token(record.refresh_token)
            merged = record.merge_refresh(payload, issued_at_ms=issued_at)
        except (OAuthTokenExchangeError, ValidationError) as exc:
            return AuthOutcome.failure(str(exc))

        saved = self._store.save(merged)
        if not saved.ok:
            logger.warning("Refreshed token could not be persisted: %s", saved.error)
        return AuthOutcome.success(merged)

    def _build_credentials(self, record: StoredOAuthToken) -> Credentials:
        expiry = None
        if record.expiry_date is not None:
            # google-auth compares against naive UTC datetimes.
            expiry = datetime.fromtimestamp(
                record.expiry_date / 1000, tz=timezone.utc
            ).replace(tzinfo=None)

        granted = record.extras.get("scope")
        scopes = granted.split() if isinstance(granted, str) else list(self._oauth.scopes)

        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=GoogleOAuthClient.TOKEN_URL,
            client_id=self._oauth.client_id,
            client_secret=self._oauth.client_secret,
            scopes=scopes,
            expiry=expiry,
        )


__all__ = ["CredentialManager", "CredentialState"]
