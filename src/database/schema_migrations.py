"""
Lazy schema migrations.

Migrations are keyed by the absence of the target shape, never by a
version number:

- Settings -> forms: a user without a forms list gets exactly one form,
  built from the legacy single-settings record (or the default template).
  Runs on login. Once the forms key exists it never runs again, whatever
  the list contains.
- Lead form-id backfill: leads stored before multi-form support have no
  formId; they are tagged with the user's first form. Runs on every ledger
  read so newly appearing untagged data heals too.

Both are read-triggered writes. Callers get a MigrationResult so the
behavior can be audited separately from the read that triggered it.
"""

import logging
from typing import Dict, List, Optional

from .kv_store import KeyValueStoreError
from .models import (
    DEFAULT_SETTINGS,
    AppSettings,
    FormConfig,
    Lead,
    MigrationResult,
)
from .record_store import RecordListStore
from .serialization import safe_parse

logger = logging.getLogger(__name__)

DEFAULT_MIGRATED_FORM_TITLE = "Formulário Padrão (Migrado)"


class MigrationEngine:
    """
    Idempotent upgrades of per-user data.

    Usage:
        engine = MigrationEngine(records)
        engine.ensure_schema(user_id)
    """

    def __init__(self, records: RecordListStore,
                 migrated_form_title: str = DEFAULT_MIGRATED_FORM_TITLE):
        self.records = records
        self.keys = records.keys
        self.migrated_form_title = migrated_form_title

    def migrate_legacy_settings(self, user_id: str) -> MigrationResult:
        """
        Create the forms list from legacy settings if it doesn't exist.

        Raises:
            KeyValueStoreError: If the substrate fails
        """
        forms_key = self.keys.forms(user_id)
        if self.records.exists(forms_key):
            return MigrationResult.NOT_NEEDED

        legacy = safe_parse(
            self.records.store.get(self.keys.legacy_settings(user_id)),
            None,
            expected_type=dict,
        )
        settings = AppSettings.from_dict(legacy) if legacy else DEFAULT_SETTINGS

        initial_form = FormConfig.from_settings(settings, title=self.migrated_form_title)
        self.records.save(forms_key, [initial_form])

        logger.info(
            f"Migrated {'legacy settings' if legacy else 'default settings'} "
            f"to form {initial_form.id} for user {user_id}"
        )
        return MigrationResult.MIGRATED

    def backfill_lead_form_ids(self, user_id: str,
                               leads: Optional[List[Lead]] = None) -> MigrationResult:
        """
        Tag leads without a formId with the user's first form.

        Args:
            user_id: Owner of the ledger
            leads: Already-loaded ledger; corrected in place when given

        Returns:
            MIGRATED if any lead was tagged and the ledger rewritten

        Raises:
            KeyValueStoreError: If the substrate fails
        """
        leads_key = self.keys.leads(user_id)
        if leads is None:
            leads = self.records.load(leads_key, Lead)

        untagged = [lead for lead in leads if not lead.form_id]
        if not untagged:
            return MigrationResult.NOT_NEEDED

        forms = self.records.load(self.keys.forms(user_id), FormConfig)
        if not forms:
            return MigrationResult.NOT_NEEDED

        default_form_id = forms[0].id
        for lead in untagged:
            lead.form_id = default_form_id
        self.records.save(leads_key, leads)

        logger.info(f"Tagged {len(untagged)} legacy leads with form {default_form_id} for user {user_id}")
        return MigrationResult.MIGRATED

    def ensure_schema(self, user_id: str) -> Dict[str, MigrationResult]:
        """
        Run every migration for a user, in dependency order.

        Forms first, so the lead backfill has a form to point at.

        Returns:
            Migration name -> result. A substrate failure is logged and
            leaves the remaining migrations unattempted.
        """
        results: Dict[str, MigrationResult] = {}
        try:
            results["settings_to_forms"] = self.migrate_legacy_settings(user_id)
            results["lead_form_ids"] = self.backfill_lead_form_ids(user_id)
        except KeyValueStoreError as e:
            logger.error(f"Schema check failed for user {user_id}: {e}")
        return results
