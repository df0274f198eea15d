"""
Typed list access on top of the key-value substrate.

Every collection in the core (users, forms, leads) is one JSON array under
one key. RecordListStore decodes those arrays into record dataclasses and
writes them back, optionally several keys in one batch.

Array entries that cannot be decoded are held aside on load and appended,
unchanged, to the next write of the same key. A damaged user, form or lead
is hidden from readers but never erased by an unrelated write.

Substrate failures (KeyValueStoreError) propagate from here; the public
components catch them at their own boundary so a failed read is never
mistaken for an empty collection and written back over real data.
"""

import logging
from typing import Any, Dict, List, Sequence, Type, TypeVar

from .kv_store import KeyValueStore
from .keys import StorageKeys
from .models import StoredRecord
from .serialization import dump, safe_parse

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=StoredRecord)


class RecordListStore:
    """Reads and writes record lists stored as JSON arrays."""

    def __init__(self, store: KeyValueStore, keys: StorageKeys):
        self.store = store
        self.keys = keys
        # Raw entries skipped by the last load of each key
        self._unreadable: Dict[str, List[Any]] = {}

    def exists(self, key: str) -> bool:
        return bool(self.store.get(key))

    def load(self, key: str, record_cls: Type[R]) -> List[R]:
        """
        Load the list under key.

        Entries that cannot be turned into record_cls are skipped with a
        warning and kept for the next save; a missing or undecodable array
        yields an empty list.
        """
        raw_items = safe_parse(self.store.get(key), [], expected_type=list)

        records = []
        unreadable = []
        for index, item in enumerate(raw_items):
            try:
                records.append(record_cls.from_dict(item))
            except TypeError as e:
                logger.warning(f"Skipping malformed {record_cls.__name__} #{index} under {key}: {e}")
                unreadable.append(item)

        if unreadable:
            self._unreadable[key] = unreadable
        else:
            self._unreadable.pop(key, None)
        return records

    def unreadable(self, key: str) -> List[Any]:
        """Raw entries the last load of key could not decode."""
        return list(self._unreadable.get(key, []))

    def _encode(self, key: str, records: Sequence[StoredRecord]) -> str:
        return dump([r.to_dict() for r in records] + self.unreadable(key))

    def save(self, key: str, records: Sequence[StoredRecord]) -> None:
        self.store.set(key, self._encode(key, records))

    def save_many(self, batches: Dict[str, Sequence[StoredRecord]]) -> None:
        """
        Write several lists.

        Uses the store's batch write when available, so all keys land
        together; otherwise writes them one by one in the given order.
        """
        encoded = {key: self._encode(key, records) for key, records in batches.items()}
        if getattr(self.store, "supports_batch", False):
            self.store.set_many(encoded)
            return
        for key, value in encoded.items():
            self.store.set(key, value)
