"""File-backed persistence for the single OAuth token record."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from youtube_mcp.models.oauth import AuthOutcome, StoredOAuthToken

logger = logging.getLogger(__name__)


class TokenFileStore:
    """Load and atomically replace the token record at ``path``."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> AuthOutcome[StoredOAuthToken]:
        try:
            if not self.exists():
                return AuthOutcome.failure(f"No token stored at {self._path}")
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            record = StoredOAuthToken.model_validate(payload)
        except (OSError, RecursionError, ValueError, ValidationError) as exc:
            logger.warning("Failed to load token from %s: %s", self._path, exc)
            return AuthOutcome.failure(f"Unreadable token file: {exc}")
        return AuthOutcome.success(record)

    def save(self, record: StoredOAuthToken) -> AuthOutcome[None]:
        """Write ``record`` to a sibling temp file, then rename it into place."""
        serialized = json.dumps(record.to_json_dict(), indent=2)
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(serialized)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            logger.error("Failed to save token to %s: %s", self._path, exc)
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return AuthOutcome.failure(f"Could not persist token: {exc}")

        logger.info("Token saved to %s", self._path)
        return AuthOutcome.success()


__all__ = ["TokenFileStore"]
