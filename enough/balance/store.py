"""
Balance Store

The single source of truth for the balance and the daily allowance.

Responsibilities:
1. Load the three persisted values once at startup
2. Detect a new calendar day and credit the allowance exactly once
3. Apply spends and allowance changes to the in-memory state
4. Hand every committed change to the persistence writer

FAILURE POLICY: nothing here may crash the app. Storage problems are
logged and the in-memory state stays authoritative for the session.
Durable state may lag behind it if a write fails.

If the stored values cannot be read at all (after retrying), the store
runs detached: mutations still apply in memory but are never written,
because every value they would write is derived from defaults rather
than from the real stored balance.

Mutations are synchronous and never wait on storage; only load() is
async, because it has to read before it can decide anything. State
changes are serialised by a thread lock, since the UI may call in from
several session threads at once.
"""

import threading
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from enough.balance.amounts import coerce_amount
from enough.balance.codec import (
    decode_amount,
    decode_date,
    encode_amount,
    encode_date,
)
from enough.config import BalanceSettings, PersistenceSettings
from enough.models.balance import (
    AllowanceOutcome,
    BalanceSnapshot,
    BalanceState,
    StorageKeys,
)
from enough.persistence import BestEffortWriter, PersistenceWriter
from enough.services.storage import CorruptStoreError, KeyValueStorageInterface


class BalanceStore:
    """
    Owns the balance/allowance state and the once-per-day rule.

    Construct it once per calendar day, await load(), then share the
    instance with whatever needs it (see enough.context).

    Usage:
        store = BalanceStore(storage)
        await store.load()
        store.spend(Decimal("4.50"))
        store.set_daily_allowance(15)
        view = store.snapshot()
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        writer: Optional[PersistenceWriter] = None,
        keys: Optional[StorageKeys] = None,
        today_provider: Callable[[], date] = date.today,
        default_balance: Decimal = Decimal("0"),
        default_daily_allowance: Decimal = Decimal("10"),
        read_attempts: int = 3,
        read_backoff_min_seconds: float = 0.5,
        read_backoff_max_seconds: float = 8.0,
    ):
        """
        Args:
            storage: Durable key/value storage to read at load time.
            writer: Write policy. Defaults to a best-effort writer on
                    the same storage.
            keys: Names of the persisted keys.
            today_provider: Returns the current local calendar date.
            default_balance: Balance used when none is stored.
            default_daily_allowance: Allowance used when none is stored.
            read_attempts: Tries for the startup read before giving up.
            read_backoff_min_seconds: Shortest wait between read tries.
            read_backoff_max_seconds: Longest wait between read tries.
        """
        if default_daily_allowance <= 0:
            raise ValueError("default_daily_allowance must be positive")

        self._storage = storage
        self._writer = writer or BestEffortWriter(storage)
        self._keys = keys or StorageKeys()
        self._today = today_provider
        self._default_balance = Decimal(default_balance)
        self._default_allowance = Decimal(default_daily_allowance)
        self._read_attempts = max(1, read_attempts)
        self._read_backoff_min = read_backoff_min_seconds
        self._read_backoff_max = read_backoff_max_seconds
        self._state = BalanceState(
            balance=self._default_balance,
            daily_allowance=self._default_allowance,
        )
        self._mutex = threading.Lock()
        self._load_started = False
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        storage: KeyValueStorageInterface,
        writer: PersistenceWriter,
        balance_settings: BalanceSettings,
        key_prefix: str = "enough_",
        today_provider: Callable[[], date] = date.today,
        persistence_settings: Optional[PersistenceSettings] = None,
    ) -> "BalanceStore":
        persistence_settings = persistence_settings or PersistenceSettings()
        return cls(
            storage,
            writer=writer,
            keys=StorageKeys.with_prefix(key_prefix),
            today_provider=today_provider,
            default_balance=balance_settings.default_balance,
            default_daily_allowance=balance_settings.default_daily_allowance,
            read_attempts=persistence_settings.max_attempts,
            read_backoff_min_seconds=persistence_settings.backoff_min_seconds,
            read_backoff_max_seconds=persistence_settings.backoff_max_seconds,
        )

    # =========================================================================
    # READ-ONLY VIEW
    # =========================================================================

    @property
    def balance(self) -> Decimal:
        return self._state.balance

    @property
    def daily_allowance(self) -> Decimal:
        return self._state.daily_allowance

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def today_allowance_added(self) -> bool:
        return self._state.today_allowance_added

    @property
    def allowance_outcome(self) -> AllowanceOutcome:
        return self._state.allowance_outcome

    @property
    def last_allowance_date(self) -> Optional[date]:
        return self._state.last_allowance_date

    @property
    def storage_unavailable(self) -> bool:
        return self._state.storage_unavailable

    @property
    def writer(self) -> PersistenceWriter:
        return self._writer

    def snapshot(self) -> BalanceSnapshot:
        """Frozen copy of the current state for the UI."""
        with self._mutex:
            return self._state.snapshot()

    # =========================================================================
    # LOAD / ROLLOVER
    # =========================================================================

    async def load(self) -> BalanceSnapshot:
        """
        Read persisted values and settle today's allowance.

        Runs once per store; later calls are ignored. is_loading is
        always False afterwards, whatever happened.
        """
        if self._load_started:
            self._logger.warning("load_ignored", reason="already loaded")
            return self.snapshot()
        self._load_started = True

        try:
            await self._load()
        except Exception as e:
            self._logger.error("load_failed", error=str(e), exc_info=True)
        finally:
            with self._mutex:
                self._state.is_loading = False

        return self.snapshot()

    def _log_read_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self._logger.warning(
            "load_read_retry",
            attempt=retry_state.attempt_number,
            max_attempts=self._read_attempts,
            error=str(exc),
        )

    async def _read_stored(self) -> dict[str, Optional[str]]:
        """multi_get with backoff. A corrupt store is not retried."""
        raw: dict[str, Optional[str]] = {}
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._read_attempts),
            wait=wait_exponential(
                multiplier=self._read_backoff_min or 1,
                min=self._read_backoff_min,
                max=self._read_backoff_max,
            ),
            retry=retry_if_not_exception_type(CorruptStoreError),
            before_sleep=self._log_read_retry,
            reraise=True,
        ):
            with attempt:
                raw = await self._storage.multi_get(self._keys.all())
        return raw

    async def _load(self) -> None:
        try:
            raw = await self._read_stored()
        except Exception as e:
            # The durable values are unknown, not absent: keep the
            # defaults in memory and never write anything derived from them.
            with self._mutex:
                self._state.storage_unavailable = True
            self._logger.error(
                "load_read_failed",
                error=str(e),
                attempts=self._read_attempts,
                exc_info=True,
            )
            return

        balance = self._read_amount(raw, self._keys.balance, self._default_balance)
        allowance = self._read_amount(
            raw,
            self._keys.daily_allowance,
            self._default_allowance,
            positive=True,
        )
        last_date = self._read_date(raw, self._keys.last_allowance_date)
        today = self._today()

        self._logger.info(
            "balance_loaded",
            balance=str(balance),
            daily_allowance=str(allowance),
            last_allowance_date=last_date.isoformat() if last_date else None,
            today=today.isoformat(),
        )

        if last_date is not None and last_date >= today:
            if last_date > today:
                self._logger.warning(
                    "allowance_date_in_future",
                    last_allowance_date=last_date.isoformat(),
                    today=today.isoformat(),
                )
            with self._mutex:
                self._state.daily_allowance = allowance
                self._state.last_allowance_date = last_date
                self._state.balance = balance
                self._state.today_allowance_added = True
                self._state.allowance_outcome = AllowanceOutcome.ALREADY_SETTLED
            self._logger.info("allowance_already_settled", balance=str(balance))
            return

        new_balance = balance + allowance
        with self._mutex:
            self._state.daily_allowance = allowance
            self._state.balance = new_balance
            self._state.last_allowance_date = today
            self._state.today_allowance_added = True
            self._state.allowance_outcome = AllowanceOutcome.CREDITED
            self._state.credited_amount = allowance
        self._logger.info(
            "allowance_credited",
            amount=str(allowance),
            balance=str(new_balance),
            date=today.isoformat(),
        )

        await self._writer.write_now(
            {
                self._keys.balance: encode_amount(new_balance),
                self._keys.last_allowance_date: encode_date(today),
            },
            reason="allowance_rollover",
        )

    def _read_amount(
        self,
        raw: dict[str, Optional[str]],
        key: str,
        default: Decimal,
        positive: bool = False,
    ) -> Decimal:
        value = raw.get(key)
        if value is None or value == "":
            return default
        try:
            amount = decode_amount(value)
        except ValueError as e:
            self._logger.warning("stored_value_unreadable", key=key, error=str(e))
            return default
        if positive and amount <= 0:
            self._logger.warning("stored_value_unreadable", key=key, error="not positive")
            return default
        return amount

    def _read_date(self, raw: dict[str, Optional[str]], key: str) -> Optional[date]:
        value = raw.get(key)
        if value is None or value == "":
            return None
        try:
            return decode_date(value)
        except ValueError as e:
            self._logger.warning("stored_value_unreadable", key=key, error=str(e))
            return None

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def spend(self, amount: Any) -> Optional[Decimal]:
        """
        Take a positive amount off the balance.

        There is no floor: the balance may go negative. The new balance
        is visible immediately; the durable write happens in the
        background.

        Returns:
            The new balance, or None if the amount was rejected
        """
        value = coerce_amount(amount)
        if value is None:
            self._logger.warning("spend_rejected", amount=repr(amount))
            return None
        self._warn_if_loading("spend")

        with self._mutex:
            new_balance = self._state.balance - value
            self._state.balance = new_balance
            # Submitted under the lock so writes queue in balance order
            self._persist({self._keys.balance: encode_amount(new_balance)}, "spend")

        self._logger.info("spend_applied", amount=str(value), balance=str(new_balance))
        return new_balance

    def set_daily_allowance(self, amount: Any) -> Optional[Decimal]:
        """
        Change the amount credited on future days.

        Does not touch the balance or the last allowance date.

        Returns:
            The new allowance, or None if the amount was rejected
        """
        value = coerce_amount(amount)
        if value is None:
            self._logger.warning("allowance_rejected", amount=repr(amount))
            return None
        self._warn_if_loading("set_daily_allowance")

        with self._mutex:
            self._state.daily_allowance = value
            self._persist(
                {self._keys.daily_allowance: encode_amount(value)},
                "set_daily_allowance",
            )

        self._logger.info("allowance_changed", daily_allowance=str(value))
        return value

    def _persist(self, items: dict[str, str], reason: str) -> None:
        if self._state.storage_unavailable:
            self._logger.warning(
                "persist_skipped",
                reason=reason,
                keys=sorted(items),
                detail="stored values were never read",
            )
            return
        self._writer.submit(items, reason=reason)

    def _warn_if_loading(self, operation: str) -> None:
        # Not blocked: waiting for load() is the caller's job.
        if self._state.is_loading:
            self._logger.warning("mutation_before_load", operation=operation)
