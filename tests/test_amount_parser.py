"""Tests for amount and ratio parsing."""

from decimal import Decimal

import pytest

from ledgerlink.utils.amount_parser import parse_amount, parse_ratio


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("$1,234.56", Decimal("1234.56")),
        (" €20 ", Decimal("20")),
        ("0.00250000", Decimal("0.00250000")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "  ", "abc", "0", "-5", "NaN", "Infinity"])
def test_parse_amount_rejects(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_parse_ratio():
    assert parse_ratio("0.6") == Decimal("0.6")
    assert parse_ratio("60%") == Decimal("0.6")
    assert parse_ratio("0") == Decimal("0")


@pytest.mark.parametrize("text", ["-0.1", "half", "NaN"])
def test_parse_ratio_rejects(text):
    with pytest.raises(ValueError):
        parse_ratio(text)
