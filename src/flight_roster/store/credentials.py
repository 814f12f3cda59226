"""Persistent participant identity in ~/.flight-roster/credentials."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import toml
from filelock import FileLock, Timeout

from flight_roster.config import roster_home


class ParticipantCredentialStore:
    """Stores the participant ID issued by the identity provider.

    One entry per server URL, so switching deployments never reuses an
    identity issued by another backend.
    """

    def __init__(self, credentials_path: Optional[Path] = None):
        self.credentials_path = credentials_path or roster_home() / "credentials"
        self.lock_path = self.credentials_path.with_suffix(".lock")

    def _ensure_directory(self):
        self.credentials_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    def _acquire_lock(self) -> FileLock:
        """Create a file lock with a timeout."""
        return FileLock(self.lock_path, timeout=10)

    def load(self) -> Optional[dict]:
        """Load credentials from TOML file. Returns None if not exists or invalid."""
        if not self.credentials_path.exists():
            return None

        try:
            with self._acquire_lock():
                with open(self.credentials_path, "r") as handle:
                    return toml.load(handle)
        except (toml.TomlDecodeError, OSError, Timeout):
            return None

    def get_participant_id(self, server_url: str) -> Optional[str]:
        data = self.load()
        if not data:
            return None
        identity = data.get("identity")
        if not isinstance(identity, dict) or identity.get("server_url") != server_url:
            return None
        participant_id = identity.get("participant_id")
        return participant_id if isinstance(participant_id, str) and participant_id else None

    def save(self, participant_id: str, server_url: str, method: str):
        """Save the issued participant ID with 600 permissions."""
        self._ensure_directory()

        data = {
            "identity": {
                "participant_id": participant_id,
                "server_url": server_url,
                "method": method,
                "issued_at": datetime.now(timezone.utc).isoformat(),
            },
        }

        try:
            with self._acquire_lock():
                with open(self.credentials_path, "w") as handle:
                    toml.dump(data, handle)
                if os.name != "nt":
                    os.chmod(self.credentials_path, 0o600)
        except Timeout as exc:
            raise RuntimeError(
                "Cannot acquire lock on credentials file. Another process may be using it."
            ) from exc
