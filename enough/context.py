"""
Application Context

DESIGN DECISION: There is no module-level store. build_app_context()
wires settings, storage, writer and store together once, and the caller
passes the resulting AppContext to whatever needs it.

Two ways to run:
- Inside an asyncio program: build the context, then `await ctx.load()`.
- From synchronous code (Streamlit): build with background=True. A
  private event loop runs in a daemon thread; background writes are
  scheduled on it, and ctx.run() executes coroutines there.

A store settles the allowance once, in load(). A long-running server
therefore needs a fresh, freshly loaded context for each calendar day;
DailyContextProvider hands that out.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Coroutine, Optional

import structlog

from enough.balance import BalanceStore
from enough.config import Settings, get_settings
from enough.logging_config import configure_logging
from enough.models import BalanceSnapshot
from enough.persistence import PersistenceWriter, create_writer
from enough.services.storage import KeyValueStorageInterface, create_storage


logger = structlog.get_logger(__name__)


class BackgroundLoop:
    """An asyncio loop running forever in a daemon thread."""

    def __init__(self, name: str = "enough-io"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run,
            name=name,
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Run a coroutine on the loop and block until it returns."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def stop(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self.loop.close()


@dataclass
class AppContext:
    """Everything the presentation layer needs, built once."""

    settings: Settings
    storage: KeyValueStorageInterface
    writer: PersistenceWriter
    store: BalanceStore
    background: Optional[BackgroundLoop] = field(default=None, repr=False)

    async def load(self) -> BalanceSnapshot:
        return await self.store.load()

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Run a coroutine from synchronous code."""
        if self.background is not None:
            return self.background.run(coro, timeout)
        return asyncio.run(coro)

    def load_blocking(self, timeout: Optional[float] = 60) -> BalanceSnapshot:
        return self.run(self.store.load(), timeout)

    def close(self, timeout: Optional[float] = 10) -> None:
        """Wait for outstanding writes, then stop the background loop."""
        if self.background is not None:
            try:
                self.writer.flush(timeout)
            except Exception as e:
                logger.error("flush_failed", error=str(e))
            self.background.stop()
            self.background = None


def build_app_context(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorageInterface] = None,
    today_provider: Callable[[], date] = date.today,
    background: bool = False,
) -> AppContext:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings()).
        storage: Storage to use instead of the configured backend.
        today_provider: Source of the current calendar date.
        background: Start a private event loop thread for writes.

    Returns:
        An AppContext whose store has not been loaded yet.
    """
    settings = settings or get_settings()
    configure_logging(settings.app)

    storage = storage or create_storage(settings)
    persistence = settings.persistence
    loop = BackgroundLoop() if background else None
    writer = create_writer(
        storage,
        persistence,
        loop=loop.loop if loop else None,
    )
    store = BalanceStore.from_settings(
        storage,
        writer,
        settings.balance,
        key_prefix=settings.storage.key_prefix,
        today_provider=today_provider,
        persistence_settings=persistence,
    )

    logger.info(
        "app_context_built",
        storage=type(storage).__name__,
        writer=type(writer).__name__,
        background=background,
    )

    return AppContext(
        settings=settings,
        storage=storage,
        writer=writer,
        store=store,
        background=loop,
    )


class DailyContextProvider:
    """
    Hands out an AppContext loaded for the current calendar day.

    The first call of a new day (by today_provider) flushes and closes
    the previous context, then builds and loads a new one, so the
    allowance is credited even if the process never restarts. A context
    whose load could not read storage is rebuilt on the next call.

    Thread-safe: every UI session may call get() concurrently. The
    storage backend is built once and shared by every day's context.

    Usage:
        provider = DailyContextProvider()
        ctx = provider.get()
        ctx.store.spend(5)
        provider.close()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[KeyValueStorageInterface] = None,
        today_provider: Callable[[], date] = date.today,
        background: bool = True,
        load_timeout: Optional[float] = 60,
    ):
        self._settings = settings
        self._storage = storage
        self._today = today_provider
        self._background = background
        self._load_timeout = load_timeout
        self._lock = threading.Lock()
        self._context: Optional[AppContext] = None
        self._day: Optional[date] = None

    @property
    def day(self) -> Optional[date]:
        """Calendar day the current context was loaded for."""
        return self._day

    def get(self) -> AppContext:
        today = self._today()
        with self._lock:
            current = self._context
            if (
                current is not None
                and self._day == today
                and not current.store.storage_unavailable
            ):
                return current

            if current is not None:
                logger.info(
                    "app_context_rotating",
                    previous_day=self._day.isoformat() if self._day else None,
                    today=today.isoformat(),
                    storage_unavailable=current.store.storage_unavailable,
                )
                current.close()

            context = build_app_context(
                self._settings,
                storage=self._storage,
                today_provider=self._today,
                background=self._background,
            )
            self._settings = context.settings
            self._storage = context.storage
            context.load_blocking(self._load_timeout)

            self._context = context
            self._day = today
            return context

    def close(self) -> None:
        """Flush and close the current context, if any."""
        with self._lock:
            if self._context is not None:
                self._context.close()
            self._context = None
            self._day = None
