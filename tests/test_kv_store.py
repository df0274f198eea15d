"""
Tests for the key-value substrate implementations.
"""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import redis

from database.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    KeyValueStoreError,
    RedisKeyValueStore,
    SQLiteKeyValueStore,
    create_store,
)


@pytest.fixture
def sqlite_store():
    """Create a fresh SQLite store on a temp file."""
    with tempfile.TemporaryDirectory() as tmp:
        yield SQLiteKeyValueStore(Path(tmp) / "kv" / "store.db")


class TestInMemoryStore:
    """Tests for the dict-backed store."""

    def test_missing_key_reads_none(self):
        assert InMemoryKeyValueStore().get("users") is None

    def test_set_then_get(self):
        store = InMemoryKeyValueStore()
        store.set("users", "[]")
        assert store.get("users") == "[]"

    def test_remove_is_idempotent(self):
        store = InMemoryKeyValueStore({"session_uid": "u1"})
        store.remove("session_uid")
        store.remove("session_uid")
        assert store.get("session_uid") is None

    def test_set_many(self):
        store = InMemoryKeyValueStore()
        store.set_many({"a_forms": "[]", "a_leads": "[]"})
        assert "a_forms" in store
        assert len(store) == 2

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryKeyValueStore(), KeyValueStore)


class TestSQLiteStore:
    """Tests for the SQLite-backed store."""

    def test_creates_parent_directory(self, sqlite_store):
        assert sqlite_store.db_path.parent.exists()

    def test_set_then_get(self, sqlite_store):
        sqlite_store.set("users", '[{"id": "u1"}]')
        assert sqlite_store.get("users") == '[{"id": "u1"}]'

    def test_overwrite(self, sqlite_store):
        sqlite_store.set("session_uid", "u1")
        sqlite_store.set("session_uid", "u2")
        assert sqlite_store.get("session_uid") == "u2"

    def test_remove(self, sqlite_store):
        sqlite_store.set("session_uid", "u1")
        sqlite_store.remove("session_uid")
        assert sqlite_store.get("session_uid") is None

    def test_set_many_writes_all_keys(self, sqlite_store):
        sqlite_store.set_many({"u1_forms": "[1]", "u1_leads": "[2]"})
        assert sqlite_store.get("u1_forms") == "[1]"
        assert sqlite_store.get("u1_leads") == "[2]"

    def test_data_survives_new_instance(self, sqlite_store):
        sqlite_store.set("users", "[]")
        reopened = SQLiteKeyValueStore(sqlite_store.db_path)
        assert reopened.get("users") == "[]"

    def test_sqlite_error_is_wrapped(self, sqlite_store):
        sqlite_store.db_path.unlink()
        sqlite_store.db_path.mkdir()
        with pytest.raises(KeyValueStoreError):
            sqlite_store.get("users")


class TestRedisStore:
    """Tests for the Redis-backed store using a mock client."""

    def test_get_decodes_bytes(self):
        client = MagicMock()
        client.get.return_value = b"[]"
        assert RedisKeyValueStore(client).get("users") == "[]"

    def test_get_missing(self):
        client = MagicMock()
        client.get.return_value = None
        assert RedisKeyValueStore(client).get("users") is None

    def test_set_and_remove_delegate(self):
        client = MagicMock()
        store = RedisKeyValueStore(client)
        store.set("session_uid", "u1")
        store.remove("session_uid")
        client.set.assert_called_once_with("session_uid", "u1")
        client.delete.assert_called_once_with("session_uid")

    def test_set_many_uses_transaction_pipeline(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        RedisKeyValueStore(client).set_many({"u1_forms": "[]", "u1_leads": "[]"})

        client.pipeline.assert_called_once_with(transaction=True)
        assert pipe.set.call_count == 2
        pipe.execute.assert_called_once()

    def test_redis_error_is_wrapped(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        with pytest.raises(KeyValueStoreError):
            RedisKeyValueStore(client).get("users")


class TestCreateStore:
    """Tests for backend selection."""

    def test_memory(self):
        assert isinstance(create_store("memory"), InMemoryKeyValueStore)

    def test_sqlite(self, tmp_path):
        store = create_store("sqlite", sqlite_path=tmp_path / "kv.db")
        assert isinstance(store, SQLiteKeyValueStore)

    def test_sqlite_requires_path(self):
        with pytest.raises(ValueError):
            create_store("sqlite")

    def test_redis_requires_url(self):
        with pytest.raises(ValueError):
            create_store("redis")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_store("localstorage")
