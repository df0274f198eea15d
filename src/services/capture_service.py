"""
Lead Capture Service.

Composition root and admin/public facade over the storage core. Wires one
key-value store into the user directory, form registry, lead ledger and
migration engine, and adds the rules the dashboard and public page rely on:

- An admin workspace always has at least one form. Loading an empty
  workspace, or deleting the last form, provisions a new one.
- A public link without a valid form id falls back to the owner's first
  form.
- Manual lead entry needs a concrete form, not the "all forms" view.

All methods are synchronous. Callers serialize mutating calls per user.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Union

from config.settings import Settings, get_settings
from database.form_registry import FormRegistry
from database.keys import StorageKeys
from database.kv_store import KeyValueStore, create_store
from database.lead_ledger import LeadLedger
from database.models import (
    ALL_FORMS_ID,
    CONSOLIDATED_FORM_ID,
    FormConfig,
    Lead,
    LeadSubmission,
    SanitizedUser,
)
from database.record_store import RecordListStore
from database.schema_migrations import MigrationEngine
from database.user_directory import UserDirectory
from services.logging_config import user_context

logger = logging.getLogger(__name__)

CONSOLIDATED_DISPLAY_NAME = "Leads Consolidados (Sem formulário)"
UNKNOWN_FORM_DISPLAY_NAME = "Desconhecido"


@dataclass
class Workspace:
    """Everything the admin dashboard shows for one user."""
    user_id: str
    forms: List[FormConfig] = field(default_factory=list)
    leads: List[Lead] = field(default_factory=list)

    def leads_for(self, form_id: str) -> List[Lead]:
        if form_id == ALL_FORMS_ID:
            return list(self.leads)
        return [lead for lead in self.leads if lead.form_id == form_id]


def filter_leads(leads: Iterable[Lead], form_ids: Iterable[str]) -> List[Lead]:
    """Keep leads whose form id is selected ("consolidated" included)."""
    selected = set(form_ids)
    return [lead for lead in leads if lead.form_id in selected]


def form_display_name(forms: Iterable[FormConfig], form_id: Optional[str]) -> str:
    """Label shown for a lead's origin."""
    if form_id == CONSOLIDATED_FORM_ID:
        return CONSOLIDATED_DISPLAY_NAME
    for form in forms:
        if form.id == form_id:
            return form.title
    return UNKNOWN_FORM_DISPLAY_NAME


def daily_lead_counts(leads: Iterable[Lead], date_format: str = "%d/%m/%Y") -> Dict[str, int]:
    """
    Count leads per capture day.

    Days appear in order of first occurrence. Leads with an unreadable
    timestamp are left out.
    """
    counts: Dict[str, int] = {}
    for lead in leads:
        try:
            captured = datetime.fromisoformat(lead.captured_at.replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            logger.debug(f"Skipping lead {lead.id} with unreadable timestamp {lead.captured_at!r}")
            continue
        day = captured.strftime(date_format)
        counts[day] = counts.get(day, 0) + 1
    return counts


class LeadCaptureService:
    """
    Facade used by the admin dashboard and the public capture page.

    Usage:
        service = LeadCaptureService.from_settings()
        service.initialize()
        user = service.users.login(email, password)
        workspace = service.load_workspace(user.id)
    """

    def __init__(self, store: KeyValueStore, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.store = store
        self.records = RecordListStore(store, StorageKeys(self.settings.storage.key_prefix))

        self.migrations = MigrationEngine(
            self.records,
            migrated_form_title=self.settings.migrated_form_title,
        )
        self.leads = LeadLedger(self.records, self.migrations)
        self.forms = FormRegistry(self.records, self.leads)
        self.users = UserDirectory(
            self.records,
            self.forms,
            self.migrations,
            first_form_title=self.settings.default_form_title,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LeadCaptureService":
        """Build the service on the configured storage backend."""
        settings = settings or get_settings()
        storage = settings.storage
        store = create_store(
            storage.backend,
            sqlite_path=storage.sqlite_path,
            redis_url=storage.redis_url,
        )
        logger.info(f"Lead capture storage backend: {storage.backend}")
        return cls(store, settings)

    def initialize(self) -> bool:
        """
        Startup hook: make sure the administrator account exists.

        Returns:
            True if the admin was created on this call
        """
        admin = self.settings.admin
        return self.users.seed_admin(admin.name, admin.email, admin.password)

    # ------------------------------------------------------------------
    # Admin surface
    # ------------------------------------------------------------------

    def current_user(self) -> Optional[SanitizedUser]:
        return self.users.current_user()

    def ensure_forms(self, user_id: str, title: Optional[str] = None) -> List[FormConfig]:
        """
        Get a user's forms, creating one if the list is empty.

        Returns:
            A non-empty list unless storage is failing
        """
        forms = self.forms.list_forms(user_id)
        if forms:
            return forms

        logger.warning(f"No forms found for user {user_id}. Auto-creating default form.")
        form = self.forms.create_form(user_id, title or self.settings.default_form_title)
        return [form] if form else []

    def load_workspace(self, user_id: str) -> Workspace:
        """Load forms (never empty) and leads for the dashboard."""
        with user_context(user_id):
            forms = self.ensure_forms(user_id)
            return Workspace(user_id=user_id, forms=forms, leads=self.leads.list_leads(user_id))

    def delete_form(self, user_id: str, form_id: str) -> List[FormConfig]:
        """
        Delete a form, keeping at least one form for the user.

        Leads of the deleted form move to "consolidated".

        Returns:
            The user's forms after the deletion
        """
        with user_context(user_id):
            self.forms.delete_form(user_id, form_id)
            return self.ensure_forms(user_id, self.settings.recovery_form_title)

    def add_manual_lead(
        self,
        user_id: str,
        form_id: str,
        submission: Union[LeadSubmission, Mapping[str, str]],
    ) -> Optional[Lead]:
        """
        Add a lead typed in by the admin.

        Returns:
            The lead, or None when form_id is the "all forms" view
        """
        if not form_id or form_id == ALL_FORMS_ID:
            logger.info(f"Manual lead rejected for user {user_id}: no specific form selected")
            return None
        return self.leads.save_lead(user_id, form_id, submission)

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def resolve_public_form(self, user_id: str, form_id: Optional[str] = None) -> Optional[FormConfig]:
        """
        Pick the form a public link shows.

        The requested form if it exists, else the owner's first form,
        else None.
        """
        forms = self.forms.list_forms(user_id)
        if form_id:
            for form in forms:
                if form.id == form_id:
                    return form
        return forms[0] if forms else None

    def submit_public_form(
        self,
        user_id: str,
        form_id: Optional[str],
        submission: Union[LeadSubmission, Mapping[str, str]],
    ) -> Optional[Lead]:
        """
        Store a visitor's submission against the resolved form.

        Returns:
            The lead, or None if the owner has no form to capture into
        """
        with user_context(user_id):
            form = self.resolve_public_form(user_id, form_id)
            if form is None:
                logger.warning(f"Submission dropped: user {user_id} has no forms")
                return None
            return self.leads.save_lead(user_id, form.id, submission)
