"""
Persistence Writers

DESIGN DECISION: The balance store never talks to storage directly when
saving. It hands the keys to a PersistenceWriter, which decides *how* the
write happens:

- BestEffortWriter: one attempt, failure is logged and forgotten
- RetryingWriter:   exponential backoff via tenacity, then give up and log

Both are non-blocking for the caller: submit() schedules the write as an
asyncio task and returns immediately. Writes are serialised through a
lock so they reach storage in submission order, even while a retrying
write is backing off.

Writes can be scheduled either on the loop the caller is running in, or
on an explicitly supplied loop running in another thread (the Streamlit
UI has no loop of its own).
"""

import asyncio
import concurrent.futures
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Union

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)

from enough.config import PersistenceSettings
from enough.services.storage import KeyValueStorageInterface


WriteHandle = Union[asyncio.Task, concurrent.futures.Future]


class PersistenceError(Exception):
    """The writer could not schedule or perform a write."""
    pass


class PersistenceWriter(ABC):
    """
    Base class for non-blocking durable writes.

    Subclasses implement _write(); everything about scheduling,
    ordering and failure logging lives here.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            storage: Where values are written.
            loop: Loop to schedule writes on when submit() is called
                  from a thread without a running loop.
        """
        self._storage = storage
        self._loop = loop
        self._pending: set[WriteHandle] = set()
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> KeyValueStorageInterface:
        return self._storage

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @abstractmethod
    async def _write(self, items: dict[str, str]) -> None:
        """Perform the write. Raise on failure."""
        pass

    def _get_lock(self) -> asyncio.Lock:
        # One lock per loop; a lock cannot be shared between loops.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _run(self, items: dict[str, str], reason: str) -> bool:
        async with self._get_lock():
            try:
                await self._write(items)
            except Exception as e:
                self._logger.error(
                    "persist_failed",
                    reason=reason,
                    keys=sorted(items),
                    error=str(e),
                )
                return False

        self._logger.debug("persisted", reason=reason, keys=sorted(items))
        return True

    def _track(self, handle: WriteHandle) -> WriteHandle:
        self._pending.add(handle)
        handle.add_done_callback(self._pending.discard)
        return handle

    def submit(self, items: Mapping[str, str], reason: str = "") -> Optional[WriteHandle]:
        """
        Schedule a write and return immediately.

        Returns:
            A handle for the scheduled write (resolves to True on
            success, False on a logged failure), or None if there was
            no loop to run it on. Never raises.
        """
        items = {key: str(value) for key, value in items.items()}
        coro = self._run(items, reason)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is not None and (self._loop is None or self._loop is running):
                return self._track(running.create_task(coro))
            if self._loop is not None and not self._loop.is_closed():
                return self._track(asyncio.run_coroutine_threadsafe(coro, self._loop))
            raise PersistenceError("no event loop available for background writes")
        except Exception as e:
            coro.close()
            self._logger.error(
                "persist_dropped",
                reason=reason,
                keys=sorted(items),
                error=str(e),
            )
            return None

    async def write_now(self, items: Mapping[str, str], reason: str = "") -> bool:
        """Write and wait for the result (still ordered behind earlier submits)."""
        return await self._run({key: str(value) for key, value in items.items()}, reason)

    async def drain(self) -> None:
        """Wait until every submitted write has finished."""
        while self._pending:
            handles = list(self._pending)
            await asyncio.gather(
                *(
                    asyncio.wrap_future(h) if isinstance(h, concurrent.futures.Future) else h
                    for h in handles
                ),
                return_exceptions=True,
            )
            self._pending.difference_update(handles)

    def flush(self, timeout: Optional[float] = None) -> None:
        """
        Blocking drain for callers outside the writer's loop.

        Only meaningful when a background loop was supplied.
        """
        if self._loop is None or self._loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.drain(), self._loop).result(timeout)


class BestEffortWriter(PersistenceWriter):
    """Single attempt. A failed write leaves durable state stale."""

    async def _write(self, items: dict[str, str]) -> None:
        await self._storage.multi_set(items)


class RetryingWriter(PersistenceWriter):
    """
    Retries failed writes with exponential backoff.

    Later writes queue behind a retrying one, so a stale value can never
    overwrite a newer one.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        max_attempts: int = 3,
        backoff_min_seconds: float = 0.5,
        backoff_max_seconds: float = 8.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        super().__init__(storage, loop=loop)
        self._max_attempts = max_attempts
        self._backoff_min = backoff_min_seconds
        self._backoff_max = backoff_max_seconds

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self._logger.warning(
            "persist_retry",
            attempt=retry_state.attempt_number,
            max_attempts=self._max_attempts,
            error=str(exc),
        )

    async def _write(self, items: dict[str, str]) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(
                multiplier=self._backoff_min or 1,
                min=self._backoff_min,
                max=self._backoff_max,
            ),
            before_sleep=self._log_retry,
            reraise=True,
        ):
            with attempt:
                await self._storage.multi_set(items)


def create_writer(
    storage: KeyValueStorageInterface,
    settings: PersistenceSettings,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> PersistenceWriter:
    """Build the writer selected by PersistenceSettings.strategy."""
    if settings.strategy == "retry":
        return RetryingWriter(
            storage,
            max_attempts=settings.max_attempts,
            backoff_min_seconds=settings.backoff_min_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            loop=loop,
        )
    return BestEffortWriter(storage, loop=loop)
