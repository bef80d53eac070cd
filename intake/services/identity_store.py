"""Client-persistent storage for the last-known draft identity.

The store holds exactly one value under ``IDENTITY_KEY``. It never holds any
form data.
"""

import json
import os
from typing import Protocol

from intake.utils.logger import LoggerMixin

IDENTITY_KEY = "applicationId"


class DraftIdentityStore(Protocol):
    def load(self) -> str | None: ...

    def save(self, identity: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryIdentityStore:
    """Identity store scoped to the lifetime of the object."""

    def __init__(self, identity: str | None = None):
        self._identity = identity

    def load(self) -> str | None:
        return self._identity

    def save(self, identity: str) -> None:
        self._identity = identity

    def clear(self) -> None:
        self._identity = None


class FileIdentityStore(LoggerMixin):
    """Identity store backed by a small JSON file, surviving restarts."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> str | None:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(
                "Unreadable identity store, starting a new draft",
                path=self.path,
                error=str(e),
            )
            return None
        identity = data.get(IDENTITY_KEY) if isinstance(data, dict) else None
        return str(identity) if identity else None

    def save(self, identity: str) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({IDENTITY_KEY: identity}, f)
        self.logger.info("Saved draft identity", draft_id=identity)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
            self.logger.info("Cleared draft identity", path=self.path)
