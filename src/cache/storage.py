"""Storage backends for FreshnessCache.

``InMemoryStorage`` lives for the process. ``SqliteStorage`` persists each slot
as one JSON row so a cached aggregate survives restarts. Values stored there
must be JSON-serializable.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS cache_entries (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    stored_at  INTEGER NOT NULL
);
"""


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: int  # epoch millis


class CacheStorage(Protocol):
    def get(self, key: str) -> CacheEntry | None: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStorage:
    """Dict-backed storage; one entry per key."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode for concurrent reads.

    Args:
        db_path: Path to the database file. Pass ":memory:" for in-memory databases (tests).

    Raises:
        ValueError: If the db path is empty.
    """
    if not db_path:
        msg = "Cache store not configured (DASHBOARD_CACHE_DB_PATH is empty)"
        raise ValueError(msg)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create the cache table if it doesn't exist (idempotent)."""
    conn.executescript(_SCHEMA_SQL)


class SqliteStorage:
    """Persisted key/value storage; a write replaces the whole row."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        init_schema(conn)

    @classmethod
    def open(cls, db_path: str) -> "SqliteStorage":
        return cls(get_connection(db_path))

    def get(self, key: str) -> CacheEntry | None:
        row = self._conn.execute("SELECT value, stored_at FROM cache_entries WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            value: Any = json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable cache entry '%s'", key)
            return None
        return CacheEntry(value=value, stored_at=row["stored_at"])

    def set(self, key: str, entry: CacheEntry) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO cache_entries (key, value, stored_at) VALUES (?, ?, ?)",
            (key, json.dumps(entry.value), entry.stored_at),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
