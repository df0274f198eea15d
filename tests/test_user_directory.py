"""
Tests for the User Directory.

Tests registration, login, the session pointer and admin seeding.
"""

import json

import pytest

from database.models import SanitizedUser


def _stored_users(store):
    return json.loads(store.get("users"))


class TestRegister:
    """Tests for account creation."""

    def test_register_returns_sanitized_user(self, directory):
        user = directory.register("Ana", "ana@x.com", "pw1")

        assert isinstance(user, SanitizedUser)
        assert user.name == "Ana"
        assert user.email == "ana@x.com"
        assert user.id
        assert user.created_at
        assert not hasattr(user, "password")

    def test_password_is_stored_internally(self, store, directory):
        directory.register("Ana", "ana@x.com", "pw1")
        assert _stored_users(store)[0]["password"] == "pw1"

    def test_register_provisions_one_form(self, directory, registry):
        user = directory.register("Ana", "ana@x.com", "pw1")
        forms = registry.list_forms(user.id)
        assert len(forms) == 1
        assert forms[0].title == "Meu Primeiro Formulário"

    def test_duplicate_email_is_rejected(self, store, directory):
        directory.register("Ana", "ana@x.com", "pw1")

        assert directory.register("Other Ana", "ana@x.com", "pw2") is None
        assert len(_stored_users(store)) == 1

    def test_email_comparison_is_case_sensitive(self, directory):
        directory.register("Ana", "ana@x.com", "pw1")
        assert directory.register("Ana", "ANA@x.com", "pw1") is not None

    def test_malformed_user_survives_registration(self, store, directory):
        store.set("users", json.dumps([{"id": "old", "email": "o@x.com", "password": "pw"}]))

        assert directory.register("Ana", "ana@x.com", "pw1") is not None

        emails = [u["email"] for u in _stored_users(store)]
        assert sorted(emails) == ["ana@x.com", "o@x.com"]

    def test_register_failure_returns_none(self, failing_store, keys):
        from database.form_registry import FormRegistry
        from database.lead_ledger import LeadLedger
        from database.record_store import RecordListStore
        from database.schema_migrations import MigrationEngine
        from database.user_directory import UserDirectory

        records = RecordListStore(failing_store, keys)
        migrations = MigrationEngine(records)
        directory = UserDirectory(records, FormRegistry(records, LeadLedger(records, migrations)), migrations)
        assert directory.register("Ana", "ana@x.com", "pw1") is None
        assert directory.login("ana@x.com", "pw1") is None
        assert directory.current_user() is None
        directory.logout()


class TestLogin:
    """Tests for authentication and the session pointer."""

    def test_login_sets_session(self, store, directory):
        user = directory.register("Ana", "ana@x.com", "pw1")

        logged_in = directory.login("ana@x.com", "pw1")

        assert logged_in == user
        assert store.get("session_uid") == user.id
        assert directory.current_user() == user

    @pytest.mark.parametrize("email,password", [
        ("ana@x.com", "wrong"),
        ("nobody@x.com", "pw1"),
        ("ana@x.com", ""),
    ])
    def test_bad_credentials(self, store, directory, email, password):
        directory.register("Ana", "ana@x.com", "pw1")
        assert directory.login(email, password) is None
        assert store.get("session_uid") is None

    def test_login_migrates_legacy_settings(self, store, directory, registry):
        store.set("users", json.dumps([{
            "id": "legacy", "name": "Old", "email": "old@x.com",
            "password": "pw", "createdAt": "2023-01-01T00:00:00.000Z",
        }]))
        store.set("legacy_settings", json.dumps({"headline": "Legacy headline"}))

        directory.login("old@x.com", "pw")

        forms = registry.list_forms("legacy")
        assert len(forms) == 1
        assert forms[0].headline == "Legacy headline"
        assert forms[0].title == "Formulário Padrão (Migrado)"

    @pytest.mark.parametrize("stored_password", [None, 123, ["pw"]])
    def test_non_string_stored_password_never_matches(self, store, directory, stored_password):
        store.set("users", json.dumps([{
            "id": "x", "name": "X", "email": "x@x.com",
            "password": stored_password, "createdAt": "t",
        }]))

        assert directory.login("x@x.com", "pw") is None
        assert store.get("session_uid") is None

    def test_failed_migration_leaves_no_session(self, keys):
        from database.form_registry import FormRegistry
        from database.kv_store import InMemoryKeyValueStore, KeyValueStoreError
        from database.lead_ledger import LeadLedger
        from database.record_store import RecordListStore
        from database.schema_migrations import MigrationEngine
        from database.user_directory import UserDirectory

        class FormsWriteFails(InMemoryKeyValueStore):
            def set(self, key, value):
                if key.endswith("_forms"):
                    raise KeyValueStoreError("disk full", key=key)
                super().set(key, value)

        store = FormsWriteFails()
        store.set("users", json.dumps([{
            "id": "u9", "name": "Old", "email": "o@x.com",
            "password": "pw", "createdAt": "t",
        }]))
        records = RecordListStore(store, keys)
        migrations = MigrationEngine(records)
        directory = UserDirectory(records, FormRegistry(records, LeadLedger(records, migrations)), migrations)

        assert directory.login("o@x.com", "pw") is None
        assert store.get("session_uid") is None
        assert directory.current_user() is None

    def test_login_keeps_existing_forms(self, directory, registry):
        user = directory.register("Ana", "ana@x.com", "pw1")
        registry.create_form(user.id, "Promo")

        directory.login("ana@x.com", "pw1")

        assert [f.title for f in registry.list_forms(user.id)] == ["Meu Primeiro Formulário", "Promo"]

    def test_logout_is_idempotent(self, store, directory):
        directory.register("Ana", "ana@x.com", "pw1")
        directory.login("ana@x.com", "pw1")

        directory.logout()
        directory.logout()

        assert store.get("session_uid") is None
        assert directory.current_user() is None

    def test_dangling_session_resolves_to_none(self, store, directory):
        store.set("session_uid", "deleted-user")
        assert directory.current_user() is None

    def test_corrupt_user_list_resolves_to_none(self, store, directory):
        store.set("session_uid", "u1")
        store.set("users", "{{{")
        assert directory.current_user() is None


class TestSeedAdmin:
    """Tests for the startup admin account."""

    def test_seed_creates_admin_once(self, store, directory):
        assert directory.seed_admin() is True
        assert directory.seed_admin() is False

        users = _stored_users(store)
        assert len(users) == 1
        assert users[0]["email"] == "doutortao@gmail.com.br"
        assert users[0]["name"] == "Administrador"

    def test_seeded_admin_can_log_in(self, directory, registry):
        directory.seed_admin()
        admin = directory.login("doutortao@gmail.com.br", "admin123")
        assert admin is not None
        assert len(registry.list_forms(admin.id)) == 1

    def test_seed_with_custom_credentials(self, directory):
        assert directory.seed_admin("Root", "root@x.com", "s3cret") is True
        assert directory.login("root@x.com", "s3cret").name == "Root"
