"""
Local JSON File Storage

DESIGN DECISION: The default durable backend is a single small JSON file
holding a flat {key: string_value} object. Three scalars do not justify
a database.

Writes go to a temporary file in the same directory which is then moved
over the target with os.replace, so a crash mid-write leaves either the
old file or the new one, never a torn one. That also makes multi_set
atomic: the rollover's balance and date land together.

File I/O runs in a worker thread so the event loop is never blocked.
"""

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from enough.services.storage.interface import (
    CorruptStoreError,
    KeyValueStorageInterface,
    StorageError,
)


class JsonFileKeyValueStorage(KeyValueStorageInterface):
    """Key/value storage backed by one JSON file."""

    def __init__(self, path: str | Path, fsync: bool = True):
        self._path = Path(path)
        self._fsync = fsync
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # -------------------------------------------------------------------------
    # Synchronous helpers (run in a worker thread)
    # -------------------------------------------------------------------------

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptStoreError(f"{self._path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise CorruptStoreError(
                f"{self._path} must hold a JSON object, got {type(data).__name__}"
            )
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write_all(self, data: dict[str, str]) -> None:
        directory = self._path.parent
        tmp_path: Optional[str] = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=self._path.name + ".",
                suffix=".tmp",
                dir=directory,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _update(self, mutate: Callable[[dict[str, str]], bool]) -> bool:
        """Read-modify-write under the file lock. mutate returns its result."""
        with self._lock:
            data = self._read_all()
            result = mutate(data)
            self._write_all(data)
            return result

    def _read_keys(self, keys: list[str]) -> dict[str, Optional[str]]:
        with self._lock:
            data = self._read_all()
        return {key: data.get(key) for key in keys}

    # -------------------------------------------------------------------------
    # Async interface
    # -------------------------------------------------------------------------

    async def get_item(self, key: str) -> Optional[str]:
        values = await asyncio.to_thread(self._read_keys, [key])
        return values[key]

    async def multi_get(self, keys: Iterable[str]) -> dict[str, Optional[str]]:
        return await asyncio.to_thread(self._read_keys, list(keys))

    async def set_item(self, key: str, value: str) -> None:
        await self.multi_set({key: value})

    async def multi_set(self, items: Mapping[str, str]) -> None:
        updates = {key: str(value) for key, value in items.items()}

        def apply(data: dict[str, str]) -> bool:
            data.update(updates)
            return True

        await asyncio.to_thread(self._update, apply)

    async def remove_item(self, key: str) -> bool:
        def apply(data: dict[str, str]) -> bool:
            return data.pop(key, None) is not None

        return await asyncio.to_thread(self._update, apply)
