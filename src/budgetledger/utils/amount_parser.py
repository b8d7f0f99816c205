"""Amount parsing utilities."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import re
from typing import Union

from budgetledger.domain.errors import ValidationError

AmountLike = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    """Round an amount to whole cents, halves away from zero."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "1,234.56"
    - "₹965"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValidationError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValidationError("Empty amount string")

    amount_str = amount_str.strip()

    # Remove currency symbols
    amount_str = re.sub(r"[$€£¥₹]", "", amount_str)

    # Remove commas
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValidationError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValidationError(f"Could not parse amount '{amount_str}'")
    return amount


def coerce_amount(value: AmountLike, field: str = "amount") -> Decimal:
    """Convert a caller-supplied number or string into a non-negative Decimal.

    The result is rounded to whole cents, so "0.004" becomes 0.00.

    Raises:
        ValidationError: If value is not a number or is negative
    """
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'Invalid input: "{field}" (number) is required.')
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        amount = parse_amount(value)
    else:
        raise ValidationError(f'Invalid input: "{field}" (number) is required.')

    if not amount.is_finite():
        raise ValidationError(f'Invalid input: "{field}" (number) is required.')
    if amount < 0:
        raise ValidationError(f'"{field}" must be non-negative.')
    try:
        return to_cents(amount)
    except InvalidOperation:
        raise ValidationError(f'"{field}" is too large.')
