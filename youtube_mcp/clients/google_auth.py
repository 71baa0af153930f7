"""
Google OAuth utilities.

These helpers build the consent URL and talk to the token endpoint for the
authorization-code exchange and refresh lifecycle.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from youtube_mcp.core.config import OAuthSettings


class OAuthConfigurationError(Exception):
    """Raised when the OAuth client id or secret is missing."""


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint fails or returns an unusable payload."""


class GoogleOAuthClient:
    """Build Google authorization URLs and exchange authorization codes."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        oauth_settings: OAuthSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        if not oauth_settings.client_id or not oauth_settings.client_secret:
            raise OAuthConfigurationError(
                "YOUTUBE_OAUTH_CLIENT_ID and YOUTUBE_OAUTH_CLIENT_SECRET environment "
                "variables are required for write operations."
            )
        self._oauth = oauth_settings
        self._transport = transport
        self._timeout = timeout

    @property
    def client_id(self) -> str:
        return self._oauth.client_id or ""

    @property
    def client_secret(self) -> str:
        return self._oauth.client_secret or ""

    @property
    def redirect_uri(self) -> str:
        return str(self._oauth.redirect_uri)

    @property
    def scopes(self) -> tuple[str, ...]:
        return tuple(self._oauth.scopes)

    def build_authorization_url(self, access_type: str = "offline") -> str:
        """Construct the Google OAuth consent URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": access_type,
            "prompt": "consent",
        }
        query = urlencode(params)
        return f"{self.AUTH_BASE_URL}?{query}"

    async def exchange_authorization_code(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for the raw token payload."""
        payload = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        token_payload = await self._post_token_request(payload)
        if not token_payload.get("access_token"):
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")
        return token_payload

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        token_payload = await self._post_token_request(payload)
        if not token_payload.get("access_token"):
            raise OAuthTokenExchangeError("Incomplete refresh payload returned from Google.")
        return token_payload

    async def _post_token_request(self, payload: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise OAuthTokenExchangeError(response.text)

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError("Token endpoint returned invalid JSON.") from exc
        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError("Token endpoint returned an unexpected payload.")
        return token_payload


__all__ = [
    "GoogleOAuthClient",
    "OAuthConfigurationError",
    "OAuthTokenExchangeError",
]
