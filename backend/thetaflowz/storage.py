"""
ThetaFlowz - Client-Local Persistence

Two independent records, each serialized as JSON under a fixed key and
rewritten in full on every mutation:

    user                  → the authenticated profile
    thetaflowz-watchlist  → the watchlist entries

The key-value backend mirrors browser local storage: string keys, string
values. A JSON file backs it in normal runs; an in-memory dict backs it in
tests. A server-authoritative backend only needs to satisfy the same
``KeyValueStorage`` protocol.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import structlog
from pydantic import ValidationError

from thetaflowz.models import User, WatchlistEntry

log = structlog.get_logger(__name__)

USER_KEY = "user"
WATCHLIST_KEY = "thetaflowz-watchlist"


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage:
    """Single JSON object on disk mapping keys to serialized strings."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("storage.unreadable", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(data, dict):
            log.warning("storage.unexpected_shape", path=str(self.path))
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(items, fh, indent=2)
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if items.pop(key, None) is not None:
            self._write_all(items)


# ──────────────────────────────────────────────
# Typed record stores
# ──────────────────────────────────────────────


class UserStore:
    """Persisted user profile. Corrupt state reads as logged-out."""

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    def load(self) -> Optional[User]:
        raw = self._storage.get_item(USER_KEY)
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError as exc:
            log.warning("storage.user_corrupt", error=str(exc))
            return None

    def save(self, user: User) -> None:
        self._storage.set_item(USER_KEY, user.model_dump_json())

    def clear(self) -> None:
        self._storage.remove_item(USER_KEY)


class WatchlistStore:
    """Persisted watchlist. Corrupt state reads as an empty list."""

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage

    def load(self) -> list[WatchlistEntry]:
        raw = self._storage.get_item(WATCHLIST_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError as exc:
            log.warning("storage.watchlist_corrupt", error=str(exc))
            return []
        if not isinstance(data, list):
            log.warning("storage.watchlist_corrupt", error="expected a JSON array")
            return []
        try:
            return [WatchlistEntry.model_validate(item) for item in data]
        except ValidationError as exc:
            log.warning("storage.watchlist_corrupt", error=str(exc))
            return []

    def save(self, entries: list[WatchlistEntry]) -> None:
        payload = json.dumps([e.model_dump(mode="json") for e in entries])
        self._storage.set_item(WATCHLIST_KEY, payload)
