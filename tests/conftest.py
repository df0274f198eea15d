"""Pytest configuration and fixtures for test suite."""

import os
import sys
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("STORAGE_BACKEND", "memory")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Clear cached settings so env changes in one test don't leak."""
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store():
    """Provide a fresh in-memory key-value store."""
    from database.kv_store import InMemoryKeyValueStore
    return InMemoryKeyValueStore()


@pytest.fixture
def keys():
    from database.keys import StorageKeys
    return StorageKeys()


@pytest.fixture
def records(store, keys):
    from database.record_store import RecordListStore
    return RecordListStore(store, keys)


@pytest.fixture
def migrations(records):
    from database.schema_migrations import MigrationEngine
    return MigrationEngine(records)


@pytest.fixture
def ledger(records, migrations):
    from database.lead_ledger import LeadLedger
    return LeadLedger(records, migrations)


@pytest.fixture
def registry(records, ledger):
    from database.form_registry import FormRegistry
    return FormRegistry(records, ledger)


@pytest.fixture
def directory(records, registry, migrations):
    from database.user_directory import UserDirectory
    return UserDirectory(records, registry, migrations)


@pytest.fixture
def service(store):
    """Provide a LeadCaptureService on the in-memory store."""
    from services.capture_service import LeadCaptureService
    return LeadCaptureService(store)


@pytest.fixture
def failing_store():
    """A store whose every operation raises KeyValueStoreError."""
    from unittest.mock import MagicMock
    from database.kv_store import KeyValueStoreError

    client = MagicMock()
    client.supports_batch = True
    error = KeyValueStoreError("substrate unavailable")
    client.get.side_effect = error
    client.set.side_effect = error
    client.remove.side_effect = error
    client.set_many.side_effect = error
    return client
