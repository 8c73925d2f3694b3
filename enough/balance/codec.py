"""
String encoding of the persisted values.

Amounts are stored as plain decimal strings. Dates are written as
zero-padded ISO dates (2025-01-05), but the older unpadded form
(2025-1-5) is still accepted on read. Dates are always compared as
date objects, never as strings.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation


_DATE_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")


def encode_amount(amount: Decimal) -> str:
    return str(amount)


def decode_amount(raw: str) -> Decimal:
    """
    Parse a stored amount.

    Raises:
        ValueError: If the value is not a finite number
    """
    try:
        amount = Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as e:
        raise ValueError(f"Not a decimal amount: {raw!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {raw!r}")
    return amount


def encode_date(value: date) -> str:
    return value.isoformat()


def decode_date(raw: str) -> date:
    """
    Parse a stored allowance date, padded or not.

    Raises:
        ValueError: If the value is not a real calendar date
    """
    match = _DATE_PATTERN.match(raw or "")
    if not match:
        raise ValueError(f"Not a YEAR-MONTH-DAY date: {raw!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)
