"""
Tests for amount handling and the stored-value codec.
"""

import math
from datetime import date
from decimal import Decimal

import pytest

from enough.balance import coerce_amount, format_amount, parse_amount
from enough.balance.codec import (
    decode_amount,
    decode_date,
    encode_amount,
    encode_date,
)


class TestCoerceAmount:
    """Tests for coerce_amount."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, Decimal("5")),
            (Decimal("4.50"), Decimal("4.50")),
            (0.1, Decimal("0.1")),
        ],
    )
    def test_accepts_positive_numbers(self, value, expected):
        assert coerce_amount(value) == expected

    @pytest.mark.parametrize(
        "value",
        [0, -1, Decimal("-0.01"), math.nan, math.inf, Decimal("NaN"), "5", None, True, False],
    )
    def test_rejects(self, value):
        assert coerce_amount(value) is None


class TestParseAmount:
    """Tests for parse_amount (UI text input)."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("4.50", Decimal("4.50")),
            ("4,50", Decimal("4.50")),
            ("  12 ", Decimal("12")),
        ],
    )
    def test_parses(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", [None, "", "   ", "abc", "0", "-3", "nan", "1,2,3"])
    def test_rejects(self, text):
        assert parse_amount(text) is None


class TestFormatAmount:
    """Tests for format_amount."""

    @pytest.mark.parametrize(
        "amount, expected",
        [
            (Decimal("35.5"), ("35", "50")),
            (Decimal("10"), ("10", "00")),
            (Decimal("0.125"), ("0", "13")),
            (Decimal("-995"), ("-995", "00")),
            (Decimal("-0.50"), ("-0", "50")),
            (Decimal("-0.001"), ("0", "00")),
        ],
    )
    def test_splits_whole_and_fraction(self, amount, expected):
        assert format_amount(amount) == expected


class TestCodec:
    """Tests for the stored string format."""

    def test_amount_is_plain_decimal_string(self):
        assert encode_amount(Decimal("-2.50")) == "-2.50"
        assert decode_amount(" 35.50 ") == Decimal("35.50")

    @pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", ""])
    def test_bad_amount_raises(self, raw):
        with pytest.raises(ValueError):
            decode_amount(raw)

    def test_date_written_padded(self):
        assert encode_date(date(2025, 1, 5)) == "2025-01-05"

    @pytest.mark.parametrize("raw", ["2025-01-05", "2025-1-5", " 2025-1-05 "])
    def test_padded_and_unpadded_dates_read_the_same(self, raw):
        assert decode_date(raw) == date(2025, 1, 5)

    @pytest.mark.parametrize("raw", ["", "05/01/2025", "2025-13-01", "2025-02-30", "yesterday"])
    def test_bad_date_raises(self, raw):
        with pytest.raises(ValueError):
            decode_date(raw)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
