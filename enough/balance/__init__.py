"""Balance and allowance state management."""

from enough.balance.amounts import coerce_amount, format_amount, parse_amount
from enough.balance.store import BalanceStore

__all__ = [
    "BalanceStore",
    "coerce_amount",
    "format_amount",
    "parse_amount",
]
