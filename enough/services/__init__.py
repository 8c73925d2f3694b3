"""Services package."""

from enough.services.storage import (
    ConnectionError,
    CorruptStoreError,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    KeyValueStorageInterface,
    StorageError,
    create_storage,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "CorruptStoreError",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "KeyValueStorageInterface",
    "StorageError",
    "create_storage",
]
