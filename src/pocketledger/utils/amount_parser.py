"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round a Decimal to two places, half up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_amount(value) -> Decimal:
    """Parse a user-supplied amount into a two-place Decimal.

    Handles strings such as:
    - "123.45"
    - "$123.45", "₱ 1,234.56"
    as well as int, float and Decimal values.

    Args:
        value: Amount as string or number

    Returns:
        Decimal amount rounded to cents

    Raises:
        ValueError: If the value is empty, not a number, or not finite
    """
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount '{value}'")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        if value is None or not str(value).strip():
            raise ValueError("Empty amount string")

        amount_str = str(value).strip()
        # Remove currency symbols and grouping separators
        amount_str = re.sub(r"[$€£¥₱₹₽฿₩]|[A-Z]\$", "", amount_str)
        amount_str = amount_str.replace(",", "").strip()

        try:
            amount = Decimal(amount_str)
        except InvalidOperation:
            raise ValueError(f"Could not parse amount '{value}'")

    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number, got '{value}'")
    return quantize_money(amount)


def parse_positive_amount(value) -> Decimal:
    """Parse an amount that must be strictly greater than zero.

    Raises:
        ValueError: If the amount cannot be parsed or is not positive
    """
    amount = parse_amount(value)
    if amount <= 0:
        raise ValueError(f"Amount must be greater than zero, got {amount}")
    return amount
