"""
Tests for the persistence writers.
"""

import asyncio

import pytest

from conftest import FailingStorage, run
from enough.config import PersistenceSettings
from enough.context import BackgroundLoop
from enough.persistence import (
    BestEffortWriter,
    RetryingWriter,
    create_writer,
)
from enough.services.storage import InMemoryKeyValueStorage


class RecordingStorage(InMemoryKeyValueStorage):
    """Records write order; the first write is slowed down."""

    def __init__(self):
        super().__init__()
        self.writes = []

    async def multi_set(self, items):
        if not self.writes:
            await asyncio.sleep(0.05)
        self.writes.append(dict(items))
        await super().multi_set(items)


class TestBestEffortWriter:
    """Tests for BestEffortWriter."""

    def test_submit_writes_in_background(self, storage):
        writer = BestEffortWriter(storage)

        async def scenario():
            handle = writer.submit({"a": "1"}, reason="test")
            await writer.drain()
            return await handle

        assert run(scenario()) is True
        assert storage.dump() == {"a": "1"}
        assert writer.pending_count == 0

    def test_writes_land_in_submission_order(self):
        storage = RecordingStorage()
        writer = BestEffortWriter(storage)

        async def scenario():
            writer.submit({"balance": "9"})
            writer.submit({"balance": "8"})
            writer.submit({"balance": "7"})
            await writer.drain()

        run(scenario())

        assert [w["balance"] for w in storage.writes] == ["9", "8", "7"]
        assert storage.dump() == {"balance": "7"}

    def test_failure_is_logged_not_raised(self):
        storage = FailingStorage(fail_writes=True)
        writer = BestEffortWriter(storage)

        async def scenario():
            handle = writer.submit({"a": "1"})
            result = await handle
            now = await writer.write_now({"b": "2"})
            return result, now

        assert run(scenario()) == (False, False)
        assert storage.write_attempts == 2
        assert storage.dump() == {}

    def test_submit_without_loop_returns_none(self, storage):
        writer = BestEffortWriter(storage)

        assert writer.submit({"a": "1"}) is None
        assert storage.dump() == {}

    def test_values_are_converted_to_strings(self, storage):
        writer = BestEffortWriter(storage)

        assert run(writer.write_now({"a": 5})) is True
        assert storage.dump() == {"a": "5"}


class TestRetryingWriter:
    """Tests for RetryingWriter."""

    def test_retries_until_success(self):
        storage = FailingStorage(failures_before_success=2)
        writer = RetryingWriter(
            storage,
            max_attempts=3,
            backoff_min_seconds=0,
            backoff_max_seconds=0,
        )

        assert run(writer.write_now({"a": "1"})) is True
        assert storage.write_attempts == 3
        assert storage.dump() == {"a": "1"}

    def test_gives_up_after_max_attempts(self):
        storage = FailingStorage(fail_writes=True)
        writer = RetryingWriter(
            storage,
            max_attempts=2,
            backoff_min_seconds=0,
            backoff_max_seconds=0,
        )

        assert run(writer.write_now({"a": "1"})) is False
        assert storage.write_attempts == 2

    def test_later_write_waits_for_retrying_one(self):
        storage = FailingStorage(failures_before_success=1)
        writer = RetryingWriter(
            storage,
            max_attempts=3,
            backoff_min_seconds=0,
            backoff_max_seconds=0,
        )

        async def scenario():
            writer.submit({"balance": "9"})
            writer.submit({"balance": "8"})
            await writer.drain()

        run(scenario())

        assert storage.dump() == {"balance": "8"}


class TestCreateWriter:
    """Tests for the writer factory."""

    def test_default_is_best_effort(self, storage):
        writer = create_writer(storage, PersistenceSettings())

        assert isinstance(writer, BestEffortWriter)

    def test_retry_strategy(self, storage):
        writer = create_writer(storage, PersistenceSettings(strategy="retry", max_attempts=5))

        assert isinstance(writer, RetryingWriter)
        assert writer.storage is storage

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            PersistenceSettings(strategy="sometimes")


class TestBackgroundLoop:
    """Writes submitted from a thread with no loop of its own."""

    def test_submit_and_flush_from_sync_code(self, storage):
        background = BackgroundLoop(name="test-io")
        try:
            writer = BestEffortWriter(storage, loop=background.loop)

            handle = writer.submit({"a": "1"})
            writer.submit({"a": "2"})
            writer.flush(timeout=5)

            assert handle is not None
            assert handle.result(timeout=5) is True
            assert storage.dump() == {"a": "2"}
        finally:
            background.stop()

    def test_submit_after_stop_is_dropped(self, storage):
        background = BackgroundLoop(name="test-io")
        writer = BestEffortWriter(storage, loop=background.loop)
        background.stop()

        assert writer.submit({"a": "1"}) is None
        writer.flush()
        assert storage.dump() == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
