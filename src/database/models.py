"""
Record types for the lead capture core.

Records are plain dataclasses serialized with camelCase keys, the shape
the browser build stored. Keys a record does not know about are kept in
``extra`` and written back untouched, so rewriting a list never drops
data added by a newer or older schema.

Credential handling: StoredUser is the only type carrying a password and
is confined to database.user_directory. Everything handed to callers is a
SanitizedUser, produced by StoredUser.sanitize().
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

# Sentinel formId for leads whose form was deleted
CONSOLIDATED_FORM_ID = "consolidated"

# Pseudo form id the dashboard uses for "every form"
ALL_FORMS_ID = "all"


class MutationResult(str, Enum):
    """Outcome of an update or delete addressed by id."""
    UPDATED = "updated"
    NOT_FOUND = "not_found"

    @property
    def found(self) -> bool:
        return self is MutationResult.UPDATED


class MigrationResult(str, Enum):
    """Outcome of a schema check."""
    NOT_NEEDED = "not_needed"
    MIGRATED = "migrated"


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class StoredRecord:
    """Mixin giving dataclasses camelCase dict conversion."""

    def to_dict(self) -> Dict[str, Any]:
        data = dict(getattr(self, "extra", None) or {})
        for f in fields(self):
            if f.name == "extra":
                continue
            data[camel_case(f.name)] = getattr(self, f.name)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """
        Build a record from its stored dict.

        Raises:
            TypeError: If data is not a mapping or a required field is missing
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"{cls.__name__} record must be an object, got {type(data).__name__}")

        known = {}
        consumed = set()
        accepts_extra = False
        for f in fields(cls):
            if f.name == "extra":
                accepts_extra = True
                continue
            key = camel_case(f.name)
            if key in data:
                known[f.name] = data[key]
                consumed.add(key)

        if accepts_extra:
            known["extra"] = {k: v for k, v in data.items() if k not in consumed}
        return cls(**known)


@dataclass
class AppSettings(StoredRecord):
    """Content, styling and delivery settings of a capture page."""

    # Content
    headline: str = "Baixe nosso E-book Exclusivo Agora!"
    subheadline: str = (
        "Descubra os segredos para alavancar seu negócio com nosso material gratuito. "
        "Preencha os dados para receber."
    )
    cta_text: str = "Receber Arquivo"
    logo_url: str = "/logo.png"
    hero_image_url: str = "https://picsum.photos/800/600"

    # Styles
    primary_color: str = "#2563eb"
    background_color: str = "#f3f4f6"
    text_color: str = "#1f2937"

    # Delivery
    redirect_url: str = "https://google.com"
    file_name: str = "ebook-estrategico.pdf"

    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


DEFAULT_SETTINGS = AppSettings()


@dataclass
class FormConfig(StoredRecord):
    """A capture form: identity plus a full AppSettings payload."""

    id: str
    title: str
    created_at: str
    headline: str = DEFAULT_SETTINGS.headline
    subheadline: str = DEFAULT_SETTINGS.subheadline
    cta_text: str = DEFAULT_SETTINGS.cta_text
    logo_url: str = DEFAULT_SETTINGS.logo_url
    hero_image_url: str = DEFAULT_SETTINGS.hero_image_url
    primary_color: str = DEFAULT_SETTINGS.primary_color
    background_color: str = DEFAULT_SETTINGS.background_color
    text_color: str = DEFAULT_SETTINGS.text_color
    redirect_url: str = DEFAULT_SETTINGS.redirect_url
    file_name: str = DEFAULT_SETTINGS.file_name

    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_settings(cls, settings: AppSettings, title: str,
                      form_id: Optional[str] = None,
                      created_at: Optional[str] = None) -> "FormConfig":
        """Stamp a settings payload with a fresh identity."""
        payload = settings.to_dict()
        payload.update(
            id=form_id or new_id(),
            title=title,
            createdAt=created_at or utc_now_iso(),
        )
        return cls.from_dict(payload)

    def settings(self) -> AppSettings:
        payload = self.to_dict()
        for key in ("id", "title", "createdAt"):
            payload.pop(key, None)
        return AppSettings.from_dict(payload)


@dataclass
class Lead(StoredRecord):
    """A captured contact. form_id is None only for pre-multi-form data."""

    id: str
    form_id: Optional[str] = None
    name: str = ""
    email: str = ""
    whatsapp: str = ""
    captured_at: str = ""

    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_consolidated(self) -> bool:
        return self.form_id == CONSOLIDATED_FORM_ID


@dataclass(frozen=True)
class LeadSubmission:
    """Fields a visitor fills in on the public form."""

    name: str
    email: str
    whatsapp: str = ""

    @classmethod
    def coerce(cls, data) -> "LeadSubmission":
        if isinstance(data, LeadSubmission):
            return data
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            whatsapp=data.get("whatsapp", ""),
        )


@dataclass(frozen=True)
class SanitizedUser(StoredRecord):
    """A user as seen outside the user directory. Carries no credential."""

    id: str
    name: str
    email: str
    created_at: str


@dataclass
class StoredUser(StoredRecord):
    """A user as persisted, including the password."""

    id: str
    name: str
    email: str
    password: str
    created_at: str

    extra: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def sanitize(self) -> SanitizedUser:
        return SanitizedUser(
            id=self.id,
            name=self.name,
            email=self.email,
            created_at=self.created_at,
        )
