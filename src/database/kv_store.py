"""
Key-Value Substrate.

Durable string-keyed storage with synchronous get/set/remove and no
multi-key transactions in the general case. Every component of the
capture core receives a store instance rather than reaching a global.

Implementations:
- InMemoryKeyValueStore: process-local dict, used by tests and previews
- SQLiteKeyValueStore: single-table SQLite file
- RedisKeyValueStore: synchronous Redis client

Values are always strings; JSON encoding happens one layer up in
database.serialization.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol, runtime_checkable

import redis

logger = logging.getLogger(__name__)


class KeyValueStoreError(Exception):
    """Raised when the underlying substrate fails to read or write."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


@runtime_checkable
class KeyValueStore(Protocol):
    """Interface every substrate implements."""

    supports_batch: bool

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def set_many(self, items: Dict[str, str]) -> None:
        ...


class InMemoryKeyValueStore:
    """
    Dict-backed store.

    Mirrors browser local storage semantics: missing keys read as None,
    removing a missing key is a no-op.
    """

    supports_batch = True

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def set_many(self, items: Dict[str, str]) -> None:
        self._data.update(items)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class SQLiteKeyValueStore:
    """
    SQLite-backed store.

    One table, one row per key. set_many writes all rows inside a single
    transaction, so multi-key updates are atomic on this backend.
    """

    supports_batch = True

    def __init__(self, db_path: Path):
        """
        Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self._ensure_table_exists()

    def _ensure_table_exists(self):
        """Create the key-value table if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_entries WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise KeyValueStoreError(f"SQLite read failed for {key}: {e}", key=key) from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise KeyValueStoreError(f"SQLite delete failed for {key}: {e}", key=key) from e

    def set_many(self, items: Dict[str, str]) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.executemany(
                    """
                    INSERT INTO kv_entries (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    list(items.items()),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise KeyValueStoreError(f"SQLite write failed for {sorted(items)}: {e}") from e


class RedisKeyValueStore:
    """
    Redis-backed store.

    set_many runs inside a MULTI/EXEC pipeline so both keys land together.

    Usage:
        store = RedisKeyValueStore.from_url("redis://localhost:6379/0")
        store.set("users", "[]")
    """

    supports_batch = True

    def __init__(self, client: "redis.Redis"):
        """
        Args:
            client: Synchronous Redis client created with decode_responses=True
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"Redis read failed for {key}: {e}", key=key) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"Redis write failed for {key}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"Redis delete failed for {key}: {e}", key=key) from e

    def set_many(self, items: Dict[str, str]) -> None:
        try:
            pipe = self._client.pipeline(transaction=True)
            for key, value in items.items():
                pipe.set(key, value)
            pipe.execute()
        except redis.RedisError as e:
            raise KeyValueStoreError(f"Redis batch write failed for {sorted(items)}: {e}") from e


def create_store(backend: str, sqlite_path: Optional[Path] = None,
                 redis_url: Optional[str] = None) -> KeyValueStore:
    """
    Build a store for the configured backend name.

    Args:
        backend: "memory", "sqlite" or "redis"
        sqlite_path: File path, required for sqlite
        redis_url: Connection URL, required for redis

    Returns:
        A KeyValueStore implementation
    """
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "sqlite":
        if sqlite_path is None:
            raise ValueError("sqlite backend requires sqlite_path")
        return SQLiteKeyValueStore(sqlite_path)
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis backend requires redis_url")
        return RedisKeyValueStore.from_url(redis_url)
    raise ValueError(f"Unknown storage backend: {backend}")
