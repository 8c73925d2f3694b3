"""
Enough - Daily Allowance Balance Tracker

A small personal tracker: a daily allowance is credited once per
calendar day and every recorded spend comes straight off the balance.

DESIGN PRINCIPLES:
1. One source of truth for the balance (BalanceStore)
2. Exactly one allowance credit per calendar day
3. The in-memory state is authoritative while the app runs
4. Persistence never blocks and never crashes the app
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Enough Team"
