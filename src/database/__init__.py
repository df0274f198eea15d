"""
Storage Layer for the Lead Capture Platform.

This module provides:
- A key-value substrate interface with in-memory, SQLite and Redis backends
- Safe JSON decoding with typed fallbacks
- User directory with isolated credential storage
- Per-user form registry and lead ledger
- Lazy, idempotent schema migrations
"""

from .kv_store import (
    KeyValueStore,
    KeyValueStoreError,
    InMemoryKeyValueStore,
    SQLiteKeyValueStore,
    RedisKeyValueStore,
    create_store,
)

from .models import (
    ALL_FORMS_ID,
    CONSOLIDATED_FORM_ID,
    DEFAULT_SETTINGS,
    AppSettings,
    FormConfig,
    Lead,
    LeadSubmission,
    MigrationResult,
    MutationResult,
    SanitizedUser,
)

from .keys import StorageKeys
from .record_store import RecordListStore
from .serialization import safe_parse, dump
from .schema_migrations import MigrationEngine
from .lead_ledger import LeadLedger
from .form_registry import FormRegistry
from .user_directory import CredentialStore, UserDirectory

__all__ = [
    # Substrate
    "KeyValueStore",
    "KeyValueStoreError",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
    # Records
    "ALL_FORMS_ID",
    "CONSOLIDATED_FORM_ID",
    "DEFAULT_SETTINGS",
    "AppSettings",
    "FormConfig",
    "Lead",
    "LeadSubmission",
    "MigrationResult",
    "MutationResult",
    "SanitizedUser",
    # Components
    "StorageKeys",
    "RecordListStore",
    "safe_parse",
    "dump",
    "MigrationEngine",
    "LeadLedger",
    "FormRegistry",
    "CredentialStore",
    "UserDirectory",
]
