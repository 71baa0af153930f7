"""Expose constructed client wrappers."""

from .google_auth import GoogleOAuthClient, OAuthConfigurationError, OAuthTokenExchangeError
from .youtube import (
    NotAuthenticatedError,
    YouTubeAPIError,
    YouTubeConfigurationError,
    YouTubeDataClient,
)

__all__ = [
    "GoogleOAuthClient",
    "NotAuthenticatedError",
    "OAuthConfigurationError",
    "OAuthTokenExchangeError",
    "YouTubeAPIError",
    "YouTubeConfigurationError",
    "YouTubeDataClient",
]
