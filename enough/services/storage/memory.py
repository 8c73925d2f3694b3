"""In-memory key/value storage (tests and throwaway sessions)."""

from typing import Mapping, Optional

from enough.services.storage.interface import KeyValueStorageInterface


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """Dict-backed storage. multi_set is atomic; nothing survives the process."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    async def remove_item(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    async def multi_set(self, items: Mapping[str, str]) -> None:
        self._items.update({key: str(value) for key, value in items.items()})

    def dump(self) -> dict[str, str]:
        """Copy of everything stored, for inspection."""
        return dict(self._items)
