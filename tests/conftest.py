"""
Shared fixtures.

Async code is driven with asyncio.run() from ordinary test functions,
the same way the UI drives it from synchronous code.
"""

import asyncio
from datetime import date
from typing import Iterable, Mapping, Optional

import pytest

from enough.config import get_settings
from enough.services.storage import InMemoryKeyValueStorage, StorageError


TODAY = date(2025, 3, 9)


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


class FixedClock:
    """Callable returning a settable calendar date."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


class FailingStorage(InMemoryKeyValueStorage):
    """In-memory storage that can be told to fail reads and/or writes."""

    def __init__(
        self,
        initial: Optional[Mapping[str, str]] = None,
        fail_reads: bool = False,
        fail_writes: bool = False,
        failures_before_success: Optional[int] = None,
        read_failures_before_success: Optional[int] = None,
    ):
        super().__init__(initial)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.failures_before_success = failures_before_success
        self.read_failures_before_success = read_failures_before_success
        self.write_attempts = 0
        self.read_attempts = 0

    def _check_read(self) -> None:
        self.read_attempts += 1
        if self.read_failures_before_success is not None:
            if self.read_attempts <= self.read_failures_before_success:
                raise StorageError(f"simulated read failure #{self.read_attempts}")
        elif self.fail_reads:
            raise StorageError("simulated read failure")

    async def get_item(self, key: str) -> Optional[str]:
        self._check_read()
        return await super().get_item(key)

    async def multi_get(self, keys: Iterable[str]) -> dict[str, Optional[str]]:
        self._check_read()
        # One read per call, not one per key
        data = self.dump()
        return {key: data.get(key) for key in keys}

    async def set_item(self, key: str, value: str) -> None:
        await self.multi_set({key: value})

    async def multi_set(self, items: Mapping[str, str]) -> None:
        self.write_attempts += 1
        if self.failures_before_success is not None:
            if self.write_attempts <= self.failures_before_success:
                raise StorageError(f"simulated write failure #{self.write_attempts}")
        elif self.fail_writes:
            raise StorageError("simulated write failure")
        await super().multi_set(items)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def json_path(tmp_path):
    return tmp_path / "data" / "enough.json"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from the environment and the settings cache."""
    for var in (
        "STORAGE_BACKEND",
        "STORAGE_JSON_PATH",
        "STORAGE_KEY_PREFIX",
        "PERSISTENCE_STRATEGY",
        "BALANCE_DEFAULT_BALANCE",
        "BALANCE_DEFAULT_DAILY_ALLOWANCE",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
