"""
Core Data Models for Enough

There is exactly one entity: the balance/allowance state. It is held in
memory by the BalanceStore and mirrored to three independent keys in
durable storage.

DESIGN DECISION: Amounts are Decimal, never float. Values typed in by the
user as floats are converted through str() so 0.1 stays 0.1.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class AllowanceOutcome(str, Enum):
    """
    What the startup load decided about today's allowance.

    today_allowance_added is True for both CREDITED and ALREADY_SETTLED;
    this enum is how a caller tells the two apart.
    """
    PENDING = "pending"                  # Not loaded yet, or storage unreadable
    CREDITED = "credited"                # This load applied today's allowance
    ALREADY_SETTLED = "already_settled"  # Applied earlier today (or clock skew)


# =============================================================================
# STATE
# =============================================================================

class BalanceState(BaseModel):
    """
    In-memory balance state.

    Mutated only by BalanceStore. The balance has no floor and may go
    negative; the allowance must stay positive.
    """
    model_config = ConfigDict(validate_assignment=True)

    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current spendable amount (may be negative)"
    )
    daily_allowance: Decimal = Field(
        default=Decimal("10"),
        gt=0,
        description="Amount credited once per calendar day"
    )
    last_allowance_date: Optional[date] = Field(
        default=None,
        description="Last calendar date the allowance was applied"
    )

    # Transient flags, never persisted
    today_allowance_added: bool = False
    is_loading: bool = True
    allowance_outcome: AllowanceOutcome = AllowanceOutcome.PENDING
    credited_amount: Optional[Decimal] = Field(
        default=None,
        description="Allowance added by this session's load, if any"
    )
    storage_unavailable: bool = Field(
        default=False,
        description="Stored values could not be read; changes stay in memory"
    )

    def snapshot(self) -> "BalanceSnapshot":
        """Freeze the current state for the presentation layer."""
        return BalanceSnapshot(
            balance=self.balance,
            daily_allowance=self.daily_allowance,
            is_loading=self.is_loading,
            today_allowance_added=self.today_allowance_added,
            allowance_outcome=self.allowance_outcome,
            last_allowance_date=self.last_allowance_date,
            credited_amount=self.credited_amount,
            storage_unavailable=self.storage_unavailable,
        )


class BalanceSnapshot(BaseModel):
    """
    Read-only view handed to the UI.

    This plus BalanceStore.spend / BalanceStore.set_daily_allowance is
    the whole presentation contract.
    """
    model_config = ConfigDict(frozen=True)

    balance: Decimal
    daily_allowance: Decimal
    is_loading: bool
    today_allowance_added: bool
    allowance_outcome: AllowanceOutcome = AllowanceOutcome.PENDING
    last_allowance_date: Optional[date] = None
    credited_amount: Optional[Decimal] = None
    storage_unavailable: bool = False

    @property
    def freshly_credited(self) -> bool:
        """True only if this session's load applied the allowance."""
        return self.allowance_outcome == AllowanceOutcome.CREDITED


# =============================================================================
# STORAGE LAYOUT
# =============================================================================

class StorageKeys(BaseModel):
    """
    Names of the three persisted keys.

    The default prefix matches the keys written by the mobile
    version of the app, so existing data is picked up as-is.
    """
    model_config = ConfigDict(frozen=True)

    balance: str = "enough_balance"
    daily_allowance: str = "enough_daily_allowance"
    last_allowance_date: str = "enough_last_allowance_date"

    @classmethod
    def with_prefix(cls, prefix: str) -> "StorageKeys":
        return cls(
            balance=f"{prefix}balance",
            daily_allowance=f"{prefix}daily_allowance",
            last_allowance_date=f"{prefix}last_allowance_date",
        )

    def all(self) -> list[str]:
        return [self.balance, self.daily_allowance, self.last_allowance_date]
