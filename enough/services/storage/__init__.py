"""
Storage Services Package

Provides the abstract key/value interface and its implementations.
The JSON file backend is the default; Google Sheets and in-memory
storage are selected through StorageSettings.backend.
"""

from typing import Optional

from enough.config import Settings, get_settings
from enough.services.storage.interface import (
    ConnectionError,
    CorruptStoreError,
    KeyValueStorageInterface,
    StorageError,
)
from enough.services.storage.json_file import JsonFileKeyValueStorage
from enough.services.storage.memory import InMemoryKeyValueStorage


def create_storage(settings: Optional[Settings] = None) -> KeyValueStorageInterface:
    """
    Build the configured storage backend.

    Google Sheets is imported lazily so gspread/google-auth are only
    touched when that backend is actually selected.
    """
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == "memory":
        return InMemoryKeyValueStorage()
    if storage_settings.backend == "google_sheets":
        from enough.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsKeyValueStorage,
        )
        return GoogleSheetsKeyValueStorage(GoogleSheetsClient(settings.google_sheets))
    return JsonFileKeyValueStorage(storage_settings.json_path)


__all__ = [
    # Interfaces
    "KeyValueStorageInterface",
    # Exceptions
    "ConnectionError",
    "CorruptStoreError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    # Factory
    "create_storage",
]
