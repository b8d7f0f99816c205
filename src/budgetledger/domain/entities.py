"""Domain model entities for budgetledger.

These are pure data classes representing ledger concepts, independent of
database schema. Services and the CLI only ever see these types; the ORM
rows stay inside the database layer.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

LOAN = "loan"
SAVINGS = "savings"
PROTECTED_CATEGORIES = frozenset({LOAN, SAVINGS})


def normalize_name(name: str) -> str:
    """Return the lookup key for a category name (trimmed, lowercased)."""
    return name.strip().lower()


def is_protected(name: str) -> bool:
    """Return True for the loan and savings categories, in any casing."""
    return normalize_name(name) in PROTECTED_CATEGORIES


class ChangeType(str, Enum):
    """Direction of a single-category balance change."""

    ADD = "add"
    SUBTRACT = "subtract"


class UpdateMode(str, Enum):
    """Which store a bulk update targets."""

    PERMANENT = "permanent"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class CategoryInput:
    """A category as supplied by a caller, before it is stored."""

    name: str
    amount: Decimal
    is_repeat: bool = True
    is_add_to_savings: bool = True

    @property
    def key(self) -> str:
        return normalize_name(self.name)


@dataclass(frozen=True)
class Category:
    """Budget category with its current balance."""

    id: int
    name: str
    amount: Decimal
    is_add_to_savings: bool
    version: int
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    @property
    def is_protected(self) -> bool:
        return self.key in PROTECTED_CATEGORIES


@dataclass(frozen=True)
class RecurringCategory:
    """Amount re-applied to the matching category every rollover."""

    id: int
    name: str
    amount: Decimal
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> str:
        return normalize_name(self.name)


@dataclass(frozen=True)
class TransactionLogEntry:
    """Record of one single-category adjustment, kept for one-step undo."""

    id: int
    category_id: int
    category_name: str
    change_type: ChangeType
    change_amount: Decimal
    previous_amount: Decimal
    new_amount: Decimal
    created_at: datetime
    expires_at: Optional[datetime] = None
