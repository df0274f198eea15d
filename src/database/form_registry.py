"""
Form Registry.

Per-user ordered list of capture forms. Insertion order is display order;
the first form is the default target for legacy leads and for public
links that don't name a form.

The registry never provisions forms on read. Keeping the list non-empty
is the job of registration and of services.capture_service.
"""

import logging
from typing import List, Optional

from .kv_store import KeyValueStoreError
from .lead_ledger import LeadLedger
from .models import (
    CONSOLIDATED_FORM_ID,
    DEFAULT_SETTINGS,
    FormConfig,
    MutationResult,
)
from .record_store import RecordListStore

logger = logging.getLogger(__name__)


class FormRegistry:
    """
    Form persistence for every user in the shared store.

    Usage:
        registry = FormRegistry(records, ledger)
        form = registry.create_form(user_id, "Promo")
        registry.delete_form(user_id, form.id)
    """

    def __init__(self, records: RecordListStore, ledger: LeadLedger):
        self.records = records
        self.keys = records.keys
        self.ledger = ledger

    def list_forms(self, user_id: str) -> List[FormConfig]:
        """
        Get a user's forms in display order.

        Returns:
            Forms, or an empty list if none exist or storage failed
        """
        try:
            return self.records.load(self.keys.forms(user_id), FormConfig)
        except KeyValueStoreError as e:
            logger.error(f"Failed to load forms for user {user_id}: {e}")
            return []

    def get_form(self, user_id: str, form_id: str) -> Optional[FormConfig]:
        for form in self.list_forms(user_id):
            if form.id == form_id:
                return form
        return None

    def create_form(self, user_id: str, title: str) -> Optional[FormConfig]:
        """
        Append a new form built from the default template.

        Returns:
            The new form, or None if it could not be persisted
        """
        form = FormConfig.from_settings(DEFAULT_SETTINGS, title=title)
        forms_key = self.keys.forms(user_id)

        try:
            forms = self.records.load(forms_key, FormConfig)
            forms.append(form)
            self.records.save(forms_key, forms)
        except KeyValueStoreError as e:
            logger.error(f"Failed to create form '{title}' for user {user_id}: {e}")
            return None

        logger.info(
            f"Created form {form.id} '{title}' for user {user_id}",
            extra={"user_id": user_id, "form_id": form.id},
        )
        return form

    def update_form(self, user_id: str, form: FormConfig) -> MutationResult:
        """Replace the stored form with the same id."""
        forms_key = self.keys.forms(user_id)
        try:
            forms = self.records.load(forms_key, FormConfig)
            for index, existing in enumerate(forms):
                if existing.id == form.id:
                    forms[index] = form
                    self.records.save(forms_key, forms)
                    return MutationResult.UPDATED
        except KeyValueStoreError as e:
            logger.error(f"Failed to update form {form.id} for user {user_id}: {e}")
            return MutationResult.NOT_FOUND

        logger.debug(
            f"Form {form.id} not found for user {user_id}; update ignored",
            extra={"user_id": user_id, "form_id": form.id},
        )
        return MutationResult.NOT_FOUND

    def delete_form(self, user_id: str, form_id: str) -> MutationResult:
        """
        Delete a form and move its leads to "consolidated".

        Leads are never deleted with their form. Both lists are written
        in one batch when the store supports it; otherwise the forms list
        is written first and an interruption can leave leads pointing at
        the deleted id. Calling delete_form again with the same id heals
        that state, since leads are reassigned even when the form is gone.

        Returns:
            UPDATED if the form existed, NOT_FOUND otherwise
        """
        forms_key = self.keys.forms(user_id)
        try:
            forms = self.records.load(forms_key, FormConfig)
            remaining = [form for form in forms if form.id != form_id]
            leads = self.ledger.reassign_form(user_id, form_id, CONSOLIDATED_FORM_ID)
            self.records.save_many({
                forms_key: remaining,
                self.keys.leads(user_id): leads,
            })
        except KeyValueStoreError as e:
            logger.error(
                f"Failed to delete form {form_id} for user {user_id}: {e}",
                extra={"user_id": user_id, "form_id": form_id},
            )
            return MutationResult.NOT_FOUND

        if len(remaining) == len(forms):
            return MutationResult.NOT_FOUND

        logger.info(
            f"Deleted form {form_id} for user {user_id}",
            extra={"user_id": user_id, "form_id": form_id},
        )
        return MutationResult.UPDATED
