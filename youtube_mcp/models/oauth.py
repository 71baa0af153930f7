"""
Domain models for OAuth token persistence.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


def now_ms() -> int:
    """Current instant in milliseconds since the epoch."""
    return int(time.time() * 1000)


class StoredOAuthToken(BaseModel):
    """Represents the token record stored on disk.

    Only the access token, refresh token and expiry are interpreted. Any other
    provider field (``token_type``, ``scope``, ``id_token`` ...) is kept in the
    model's extra map and written back untouched.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None
    expiry_date: Optional[int] = None

    @classmethod
    def from_token_response(
        cls, payload: Dict[str, Any], *, issued_at_ms: int
    ) -> "StoredOAuthToken":
        """Build a record from a token endpoint response."""
        data = dict(payload)
        expires_in = data.pop("expires_in", None)
        if expires_in is not None and data.get("expiry_date") is None:
            data["expiry_date"] = issued_at_ms + int(expires_in) * 1000
        return cls.model_validate(data)

    @property
    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        """A token is valid strictly before its expiry instant."""
        if self.expiry_date is None:
            return False
        current = now_ms() if at_ms is None else at_ms
        return not current < self.expiry_date

    def merge_refresh(
        self, payload: Dict[str, Any], *, issued_at_ms: int
    ) -> "StoredOAuthToken":
        """Fold a refresh response into this record.

        The refresh token is carried over unless the provider reissued one.
        """
        refreshed = StoredOAuthToken.from_token_response(payload, issued_at_ms=issued_at_ms)
        merged = self.to_json_dict()
        merged.update(refreshed.to_json_dict())
        if not refreshed.refresh_token:
            merged["refresh_token"] = self.refresh_token
        return StoredOAuthToken.model_validate(merged)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True, slots=True)
class AuthOutcome(Generic[T]):
    """Result of a fallible credential step: either a value or an error message."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "AuthOutcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "AuthOutcome[T]":
        return cls(ok=False, error=error)


__all__ = ["AuthOutcome", "StoredOAuthToken", "now_ms"]
