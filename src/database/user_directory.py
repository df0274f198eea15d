"""
User Directory.

Global list of registered accounts plus the single active-session pointer.

Credential isolation:
- CredentialStore is the only code that reads or writes the password
  field of stored users.
- UserDirectory hands out SanitizedUser values only.

Failures follow the absence-of-result convention: a conflicting
registration or a failed login returns None, and a login failure never
says which field was wrong.
"""

import hmac
import logging
from typing import List, Optional

from .form_registry import FormRegistry
from .kv_store import KeyValueStoreError
from .models import SanitizedUser, StoredUser, new_id, utc_now_iso
from .record_store import RecordListStore
from .schema_migrations import MigrationEngine

logger = logging.getLogger(__name__)

DEFAULT_FIRST_FORM_TITLE = "Meu Primeiro Formulário"

DEFAULT_ADMIN_NAME = "Administrador"
DEFAULT_ADMIN_EMAIL = "doutortao@gmail.com.br"
DEFAULT_ADMIN_PASSWORD = "admin123"


class CredentialStore:
    """
    Reads and writes the stored user list, passwords included.

    Methods raise KeyValueStoreError on substrate failure; UserDirectory
    turns that into its None results.
    """

    def __init__(self, records: RecordListStore):
        self.records = records
        self.key = records.keys.users

    def all(self) -> List[StoredUser]:
        return self.records.load(self.key, StoredUser)

    def find_by_id(self, user_id: str) -> Optional[StoredUser]:
        for user in self.all():
            if user.id == user_id:
                return user
        return None

    def email_taken(self, email: str) -> bool:
        return any(user.email == email for user in self.all())

    def verify(self, email: str, password: str) -> Optional[StoredUser]:
        """
        Return the user whose email and password both match exactly.

        A stored password that is not a string never matches.
        """
        for user in self.all():
            if user.email != email or not isinstance(user.password, str):
                continue
            if hmac.compare_digest(user.password.encode("utf-8"), password.encode("utf-8")):
                return user
        return None

    def add(self, user: StoredUser) -> None:
        users = self.all()
        users.append(user)
        self.records.save(self.key, users)


class UserDirectory:
    """
    Registration, login and the session pointer.

    Usage:
        directory = UserDirectory(records, forms, migrations)
        user = directory.register("Ana", "ana@x.com", "pw1")
        directory.login("ana@x.com", "pw1")
        directory.current_user()
    """

    def __init__(
        self,
        records: RecordListStore,
        forms: FormRegistry,
        migrations: MigrationEngine,
        first_form_title: str = DEFAULT_FIRST_FORM_TITLE,
    ):
        self.records = records
        self.keys = records.keys
        self.credentials = CredentialStore(records)
        self.forms = forms
        self.migrations = migrations
        self.first_form_title = first_form_title

    def register(self, name: str, email: str, password: str) -> Optional[SanitizedUser]:
        """
        Create an account and its first form.

        Returns:
            The new user, or None if the email is already registered or
            the account could not be stored
        """
        user = StoredUser(
            id=new_id(),
            name=name,
            email=email,
            password=password,
            created_at=utc_now_iso(),
        )

        try:
            if self.credentials.email_taken(email):
                logger.info(f"Registration rejected: email already registered ({email})")
                return None
            self.credentials.add(user)
        except KeyValueStoreError as e:
            logger.error(f"Failed to register user {email}: {e}")
            return None

        if self.forms.create_form(user.id, self.first_form_title) is None:
            # The settings->forms migration provisions a form on first login.
            logger.warning(f"User {user.id} registered without a first form")

        logger.info(f"Registered user {user.id}")
        return user.sanitize()

    def login(self, email: str, password: str) -> Optional[SanitizedUser]:
        """
        Authenticate and open a session.

        Runs the settings->forms migration for the user first; the session
        pointer is only written once the user has a form collection.
        """
        try:
            user = self.credentials.verify(email, password)
            if user is None:
                logger.info("Login failed: invalid credentials")
                return None
            self.migrations.migrate_legacy_settings(user.id)
            self.records.store.set(self.keys.session, user.id)
        except KeyValueStoreError as e:
            logger.error(f"Login failed for {email}: {e}")
            return None

        logger.info(f"User {user.id} logged in")
        return user.sanitize()

    def logout(self) -> None:
        try:
            self.records.store.remove(self.keys.session)
        except KeyValueStoreError as e:
            logger.error(f"Failed to clear session pointer: {e}")

    def current_user(self) -> Optional[SanitizedUser]:
        """Resolve the session pointer; None when absent or dangling."""
        try:
            user_id = self.records.store.get(self.keys.session)
            if not user_id:
                return None
            user = self.credentials.find_by_id(user_id)
        except KeyValueStoreError as e:
            logger.error(f"Failed to resolve current user: {e}")
            return None

        if user is None:
            logger.warning(f"Session points at unknown user {user_id}")
            return None
        return user.sanitize()

    def seed_admin(
        self,
        name: str = DEFAULT_ADMIN_NAME,
        email: str = DEFAULT_ADMIN_EMAIL,
        password: str = DEFAULT_ADMIN_PASSWORD,
    ) -> bool:
        """
        Register the administrator account if its email is absent.

        Safe to call on every startup.

        Returns:
            True if the account was created by this call
        """
        try:
            if self.credentials.email_taken(email):
                return False
        except KeyValueStoreError as e:
            logger.error(f"Failed to check admin account: {e}")
            return False

        created = self.register(name, email, password) is not None
        if created:
            logger.info("Admin user seeded.")
        return created
