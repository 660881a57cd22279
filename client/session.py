"""
client/session.py -- The client's single stored session token.

SessionState is the only place the client keeps its token. ApiClient gets
one injected and reads, writes, and clears it through these three methods;
nothing else touches the slot.

FileSessionState persists the slot to a JSON file under a well-known key so
the CLI stays logged in across invocations. Clearing is idempotent: two
overlapping 401s clearing the same slot is harmless.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger("smartticket.client")

TOKEN_STORAGE_KEY = "token"


def default_session_path() -> Path:
    return Path.home() / ".smartticket" / "session.json"


class SessionState:
    """In-memory token slot. Lives as long as the process."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        if not token:
            raise ValueError("Refusing to store an empty session token.")
        self._token = token

    def clear(self) -> None:
        self._token = None

    @property
    def is_authenticated(self) -> bool:
        return self.get_token() is not None


class FileSessionState(SessionState):
    """Token slot backed by a JSON file ({"token": "..."})."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_session_path()
        super().__init__(self._read().get(TOKEN_STORAGE_KEY))

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        """Write via a 0600 temp file and an atomic replace.

        The token is never on disk under wider permissions, and readers see
        either the old file or the new one.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # O_CREAT keeps the mode of a leftover temp file.
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(json.dumps(data, indent=2, sort_keys=True) + "\n")
        os.replace(tmp, self.path)

    def set_token(self, token: str) -> None:
        super().set_token(token)
        data = self._read()
        data[TOKEN_STORAGE_KEY] = token
        self._write(data)

    def clear(self) -> None:
        super().clear()
        data = self._read()
        if data.pop(TOKEN_STORAGE_KEY, None) is not None:
            self._write(data)
