"""Namespaced durable key-value store.

Every piece of learner state lives in one logical collection. A collection is
read and written as a whole, JSON-encoded, under ``<prefix><collection>``.

Reads never raise: a missing, unreadable or wrongly-shaped value comes back as
the collection's documented default. Writes are best-effort: failures are
logged and reported as ``False`` so the in-memory state stays authoritative
for the rest of the session.

Usage:
    store = DurableStore(SQLiteBackend())
    progress = store.read(Collection.PROGRESS)
    store.write(Collection.PROGRESS, progress)
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "devMastery_"


class Collection(str, Enum):
    PROGRESS = "progress"
    PROFILE = "profile"
    NOTES = "notes"
    ACHIEVEMENTS = "achievements"
    GOALS = "goals"
    THEME = "theme"
    SEARCH_HISTORY = "search_history"
    EXPANDED = "expanded"
    ACTIVITY = "activity"


# Documented default per collection. None means "absent".
DEFAULTS: dict[Collection, Any] = {
    Collection.PROGRESS: {"completedCards": [], "bookmarks": []},
    Collection.PROFILE: None,
    Collection.NOTES: {},
    Collection.ACHIEVEMENTS: [],
    Collection.GOALS: None,
    Collection.THEME: "light",
    Collection.SEARCH_HISTORY: [],
    Collection.EXPANDED: {},
    Collection.ACTIVITY: {},
}

# JSON type a stored value must have; anything else is treated as corrupt.
_EXPECTED_TYPES: dict[Collection, type] = {
    Collection.PROGRESS: dict,
    Collection.PROFILE: dict,
    Collection.NOTES: dict,
    Collection.ACHIEVEMENTS: list,
    Collection.GOALS: dict,
    Collection.THEME: str,
    Collection.SEARCH_HISTORY: list,
    Collection.EXPANDED: dict,
    Collection.ACTIVITY: dict,
}


# ── Backends ───────────────────────────────────────────────

class StorageBackend(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, raw: str) -> None: ...
    def delete(self, key: str) -> None: ...


class InMemoryBackend:
    """Dict-backed storage; state lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteBackend:
    """Stores each key as one row of the kv_store table.

    ``connect`` returns the connection to use; by default the per-request
    connection from database.get_db().
    """

    def __init__(self, connect: Callable[[], sqlite3.Connection] | None = None) -> None:
        if connect is None:
            from database import get_db
            connect = get_db
        self._connect = connect

    def get(self, key: str) -> str | None:
        row = self._connect().execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return row[0]

    def set(self, key: str, raw: str) -> None:
        db = self._connect()
        db.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, raw, datetime.now().isoformat()),
        )
        db.commit()

    def delete(self, key: str) -> None:
        db = self._connect()
        db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        db.commit()


# ── Store ──────────────────────────────────────────────────

class DurableStore:
    """Best-effort persistence of whole collections."""

    def __init__(self, backend: StorageBackend, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self.backend = backend
        self.key_prefix = key_prefix

    def key_for(self, collection: Collection) -> str:
        return f"{self.key_prefix}{collection.value}"

    def default(self, collection: Collection) -> Any:
        """Return a fresh copy of the collection's default value."""
        return copy.deepcopy(DEFAULTS[collection])

    def read(self, collection: Collection) -> Any:
        key = self.key_for(collection)
        try:
            raw = self.backend.get(key)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Storage read failed (key=%s): %s", key, e, extra={"storage_key": key})
            return self.default(collection)
        if raw is None:
            return self.default(collection)
        try:
            value = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Discarding unreadable value (key=%s): %s", key, e, extra={"storage_key": key})
            return self.default(collection)
        if not isinstance(value, _EXPECTED_TYPES[collection]):
            logger.warning(
                "Discarding value of unexpected type %s (key=%s)", type(value).__name__, key,
                extra={"storage_key": key},
            )
            return self.default(collection)
        return value

    def write(self, collection: Collection, value: Any) -> bool:
        key = self.key_for(collection)
        try:
            raw = json.dumps(value)
            self.backend.set(key, raw)
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            logger.warning("Storage write failed (key=%s): %s", key, e, extra={"storage_key": key})
            return False
        return True

    def clear(self, collection: Collection) -> bool:
        key = self.key_for(collection)
        try:
            self.backend.delete(key)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Storage clear failed (key=%s): %s", key, e, extra={"storage_key": key})
            return False
        return True
