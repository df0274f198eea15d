"""
Lead Ledger.

Per-user collection of captured leads, newest first. Each lead carries the
id of the form that produced it, or "consolidated" once that form has been
deleted.

Every read runs the form-id backfill before returning, so callers always
see fully tagged leads.

Update and delete by id are tolerant: an unknown id is reported as
MutationResult.NOT_FOUND and nothing is written.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Union

from .kv_store import KeyValueStoreError
from .models import (
    CONSOLIDATED_FORM_ID,
    Lead,
    LeadSubmission,
    MutationResult,
    new_id,
    utc_now_iso,
)
from .record_store import RecordListStore
from .schema_migrations import MigrationEngine

logger = logging.getLogger(__name__)


class LeadLedger:
    """
    Lead persistence for every user in the shared store.

    Usage:
        ledger = LeadLedger(records, migrations)
        ledger.save_lead(user_id, form_id, {"name": "Ana", "email": "ana@x.com", "whatsapp": ""})
        leads = ledger.list_leads(user_id)
    """

    def __init__(self, records: RecordListStore, migrations: MigrationEngine):
        self.records = records
        self.keys = records.keys
        self.migrations = migrations

    def _load(self, user_id: str) -> List[Lead]:
        """Load the ledger with the backfill applied."""
        leads = self.records.load(self.keys.leads(user_id), Lead)
        self.migrations.backfill_lead_form_ids(user_id, leads)
        return leads

    def list_leads(self, user_id: str) -> List[Lead]:
        """
        Get all leads for a user, across all forms.

        Returns:
            Leads, most recently captured first; empty on storage failure
        """
        try:
            return self._load(user_id)
        except KeyValueStoreError as e:
            logger.error(f"Failed to load leads for user {user_id}: {e}")
            return []

    def save_lead(
        self,
        user_id: str,
        form_id: str,
        submission: Union[LeadSubmission, Mapping[str, str]],
    ) -> Optional[Lead]:
        """
        Record a form submission.

        Repeated submissions are kept; there is no duplicate detection.

        Args:
            user_id: Owner of the form
            form_id: Form the visitor submitted
            submission: name, email and whatsapp fields

        Returns:
            The stored lead, or None if it could not be persisted
        """
        data = LeadSubmission.coerce(submission)
        lead = Lead(
            id=new_id(),
            form_id=form_id,
            name=data.name,
            email=data.email,
            whatsapp=data.whatsapp,
            captured_at=utc_now_iso(),
        )

        try:
            leads = self._load(user_id)
            self.records.save(self.keys.leads(user_id), [lead] + leads)
        except KeyValueStoreError as e:
            logger.error(f"Failed to save lead for user {user_id}: {e}")
            return None

        logger.debug(
            f"Saved lead {lead.id} on form {form_id} for user {user_id}",
            extra={"user_id": user_id, "form_id": form_id, "lead_id": lead.id},
        )
        return lead

    def update_lead(self, user_id: str, lead: Lead) -> MutationResult:
        """Replace the stored lead with the same id."""
        try:
            leads = self._load(user_id)
            for index, existing in enumerate(leads):
                if existing.id == lead.id:
                    leads[index] = lead
                    self.records.save(self.keys.leads(user_id), leads)
                    return MutationResult.UPDATED
        except KeyValueStoreError as e:
            logger.error(
                f"Failed to update lead {lead.id} for user {user_id}: {e}",
                extra={"user_id": user_id, "lead_id": lead.id},
            )
            return MutationResult.NOT_FOUND

        logger.debug(
            f"Lead {lead.id} not found for user {user_id}; update ignored",
            extra={"user_id": user_id, "lead_id": lead.id},
        )
        return MutationResult.NOT_FOUND

    def delete_lead(self, user_id: str, lead_id: str) -> MutationResult:
        """Delete one lead by id."""
        removed = self.delete_many_leads(user_id, [lead_id])
        return MutationResult.UPDATED if removed else MutationResult.NOT_FOUND

    def delete_many_leads(self, user_id: str, lead_ids: Iterable[str]) -> int:
        """
        Delete every lead whose id is in lead_ids.

        Unknown ids are ignored.

        Returns:
            Number of leads removed
        """
        doomed = set(lead_ids)
        try:
            leads = self._load(user_id)
            kept = [lead for lead in leads if lead.id not in doomed]
            if len(kept) != len(leads):
                self.records.save(self.keys.leads(user_id), kept)
        except KeyValueStoreError as e:
            logger.error(f"Failed to delete leads for user {user_id}: {e}")
            return 0

        removed = len(leads) - len(kept)
        if removed:
            logger.info(f"Deleted {removed} leads for user {user_id}")
        return removed

    def reassign_form(self, user_id: str, form_id: str,
                      target: str = CONSOLIDATED_FORM_ID) -> List[Lead]:
        """
        Point every lead of form_id at target, without persisting.

        Returns:
            The full corrected ledger, ready to be written

        Raises:
            KeyValueStoreError: If the substrate fails
        """
        leads = self._load(user_id)
        moved = 0
        for lead in leads:
            if lead.form_id == form_id:
                lead.form_id = target
                moved += 1
        if moved:
            logger.info(
                f"Moved {moved} leads from form {form_id} to {target} for user {user_id}",
                extra={"user_id": user_id, "form_id": form_id},
            )
        return leads
