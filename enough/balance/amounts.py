"""
Amount validation and display helpers.

coerce_amount() is the store's own check on mutation arguments.
parse_amount() is for free text typed into the UI, where a comma is
accepted as the decimal separator ("4,50" -> 4.50).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any, Optional


TWO_PLACES = Decimal("0.01")


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Convert a mutation argument to a positive, finite Decimal.

    Returns None for anything the store must reject: non-numbers
    (including bools and strings), NaN, infinities, zero and negatives.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, Real):
        # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse user-entered text into a positive amount.

    >>> parse_amount("4,50")
    Decimal('4.50')
    >>> parse_amount("abc") is None
    True
    """
    if text is None:
        return None
    cleaned = text.strip().replace(",", ".")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return coerce_amount(amount)


def format_amount(amount: Decimal) -> tuple[str, str]:
    """
    Split an amount into whole and fractional display parts.

    The balance screen renders the cents smaller than the whole units.
    Negative balances keep their sign on the whole part.
    """
    quantized = Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    whole, _, fraction = f"{quantized:.2f}".partition(".")
    if whole == "-0":
        whole = "0" if quantized == 0 else whole
    return whole, fraction
