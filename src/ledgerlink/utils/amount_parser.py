"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

_SYMBOLS = re.compile(r"[$€£¥₿]")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an entry amount string into a positive Decimal.

    Entry lines carry their direction in the debit/credit type, so amounts are
    always positive. Currency symbols, thousands separators and surrounding
    whitespace are ignored:
    - "123.45"
    - "$1,234.56"
    - "0.00250000" (crypto quantities keep their precision)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount greater than zero

    Raises:
        ValueError: If the string is not a finite positive number
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = _SYMBOLS.sub("", amount_str.strip()).replace(",", "").strip()
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e

    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Amount must be a positive number, got '{amount_str}'")
    return amount


def parse_ratio(ratio_str: str) -> Decimal:
    """Parse an allocation ratio such as "0.6" or "60%".

    Raises:
        ValueError: If the ratio is not a finite, non-negative number
    """
    text = ratio_str.strip()
    percent = text.endswith("%")
    if percent:
        text = text[:-1].strip()
    try:
        ratio = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse ratio '{ratio_str}'") from e
    if not ratio.is_finite() or ratio < 0:
        raise ValueError(f"Ratio must be a non-negative number, got '{ratio_str}'")
    return ratio / 100 if percent else ratio
