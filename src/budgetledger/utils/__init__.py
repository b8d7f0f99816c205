"""Utility functions for budgetledger."""

from budgetledger.utils.date_parser import parse_date
from budgetledger.utils.amount_parser import parse_amount, coerce_amount
from budgetledger.utils.category_parser import parse_category_spec

__all__ = ["parse_date", "parse_amount", "coerce_amount", "parse_category_spec"]
