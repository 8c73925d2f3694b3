"""Configuration package."""

from enough.config.settings import (
    AppSettings,
    BalanceSettings,
    GoogleSheetsSettings,
    PersistenceSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BalanceSettings",
    "GoogleSheetsSettings",
    "PersistenceSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
