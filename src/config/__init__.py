"""Configuration module for the lead capture platform."""

from .settings import AdminSeedSettings, Settings, StorageSettings, get_settings

__all__ = [
    "AdminSeedSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
