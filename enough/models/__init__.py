"""
Data Models Package

Pydantic models for the balance state and its storage layout.
"""

from enough.models.balance import (
    AllowanceOutcome,
    BalanceSnapshot,
    BalanceState,
    StorageKeys,
)

__all__ = [
    "AllowanceOutcome",
    "BalanceSnapshot",
    "BalanceState",
    "StorageKeys",
]
