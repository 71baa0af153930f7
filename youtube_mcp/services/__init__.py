"""Service layer exports."""

from .authorization_session import CallbackResult, LoopbackAuthorizationSession
from .channel import ChannelService
from .credential_manager import CredentialManager, CredentialState
from .playlist import PlaylistService
from .token_store import TokenFileStore
from .video import VideoService

__all__ = [
    "CallbackResult",
    "ChannelService",
    "CredentialManager",
    "CredentialState",
    "LoopbackAuthorizationSession",
    "PlaylistService",
    "TokenFileStore",
    "VideoService",
]
