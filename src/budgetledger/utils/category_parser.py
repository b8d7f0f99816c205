"""Parse NAME=AMOUNT category arguments."""

from budgetledger.domain.entities import CategoryInput
from budgetledger.domain.errors import ValidationError
from budgetledger.utils.amount_parser import coerce_amount


def parse_category_spec(
    spec: str, is_repeat: bool = True, is_add_to_savings: bool = True
) -> CategoryInput:
    """Parse "groceries=100" into a CategoryInput.

    The last "=" separates the amount, so names may contain "=".

    Raises:
        ValidationError: If the spec has no "=", an empty name or a bad amount
    """
    name, sep, amount = spec.rpartition("=")
    if not sep or not name.strip():
        raise ValidationError(f"Expected NAME=AMOUNT, got '{spec}'")
    return CategoryInput(
        name=name.strip(),
        amount=coerce_amount(amount),
        is_repeat=is_repeat,
        is_add_to_savings=is_add_to_savings,
    )


def parse_category_specs(specs, is_repeat: bool = True, is_add_to_savings: bool = True) -> list[CategoryInput]:
    """Parse several NAME=AMOUNT arguments."""
    return [parse_category_spec(spec, is_repeat, is_add_to_savings) for spec in specs]
