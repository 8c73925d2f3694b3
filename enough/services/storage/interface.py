"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the balance logic unaware of where values live
2. Use in-memory storage for testing
3. Swap the local JSON file for Google Sheets with one setting

The interface is a plain string key/value store, the same shape as the
mobile key-value storage the data originally lived in. Values are always
strings; an absent key reads as None, which is not the same as "0".
"""

from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for durable key/value storage.

    No transactional guarantee across keys is implied by the interface.
    Implementations document whether multi_set is atomic.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read a single value.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Write a single value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if the key existed
        """
        pass

    async def multi_get(self, keys: Iterable[str]) -> dict[str, Optional[str]]:
        """
        Read several values.

        Returns:
            {key: value_or_None} for every requested key
        """
        return {key: await self.get_item(key) for key in keys}

    async def multi_set(self, items: Mapping[str, str]) -> None:
        """
        Write several values.

        The default writes one key at a time; a failure part way
        through leaves the earlier keys written.
        """
        for key, value in items.items():
            await self.set_item(key, value)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class CorruptStoreError(StorageError):
    """Stored data exists but cannot be decoded."""
    pass
