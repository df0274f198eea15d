"""
Key naming conventions for the shared key-value namespace.

Key layout (with an optional global prefix):
- users                 - list of StoredUser records
- session_uid           - id of the logged-in user (raw string)
- {user_id}_forms       - ordered list of FormConfig records
- {user_id}_leads       - list of Lead records, newest first
- {user_id}_settings    - legacy single AppSettings record (read-only)
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StorageKeys:
    """Builds every key the core reads or writes."""

    prefix: str = ""

    @property
    def users(self) -> str:
        return f"{self.prefix}users"

    @property
    def session(self) -> str:
        return f"{self.prefix}session_uid"

    def forms(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}_forms"

    def leads(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}_leads"

    def legacy_settings(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}_settings"
