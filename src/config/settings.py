"""Application settings using Pydantic Settings.

Centralized configuration for the lead capture platform.

Storage backend selection:
- STORAGE_BACKEND=memory  - process-local dict (tests, previews)
- STORAGE_BACKEND=sqlite  - durable single-file key-value table
- STORAGE_BACKEND=redis   - shared Redis instance

The administrator account seeded at startup is configured through the
ADMIN_* variables.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = Path(__file__).parent.parent.parent / "data" / "lead_capture.db"

SUPPORTED_BACKENDS = ("memory", "sqlite", "redis")


class StorageSettings(BaseSettings):
    """Key-value substrate configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore",
    )

    backend: str = Field(default="memory", description="Key-value backend: memory, sqlite or redis")
    sqlite_path: Path = Field(default=DEFAULT_SQLITE_PATH, description="SQLite file for the sqlite backend")
    key_prefix: str = Field(default="", description="Prefix for every stored key (legacy browser data used 'saas_')")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for the redis backend")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported storage backend '{v}'. Use one of: {', '.join(SUPPORTED_BACKENDS)}")
        return v


class AdminSeedSettings(BaseSettings):
    """Administrator account registered on every startup if absent."""

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_",
        extra="ignore",
    )

    name: str = Field(default="Administrador", description="Admin display name")
    email: str = Field(default="doutortao@gmail.com.br", description="Admin login email")
    password: str = Field(default="admin123", description="Admin password")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Leads do Capitão", description="Application name")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON formatted logs")
    log_file: Optional[Path] = Field(default=None, description="Optional JSON log file")

    # Form titles used by provisioning paths
    default_form_title: str = Field(
        default="Meu Primeiro Formulário",
        description="Title of the form created at registration",
    )
    migrated_form_title: str = Field(
        default="Formulário Padrão (Migrado)",
        description="Title of the form synthesized from legacy settings",
    )
    recovery_form_title: str = Field(
        default="Novo Formulário",
        description="Title of the form re-created after the last one is deleted",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level '{v}'")
        return v

    # Nested settings (loaded separately)
    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def admin(self) -> AdminSeedSettings:
        return AdminSeedSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
