"""Domain layer for budgetledger application.

Services live in ``budgetledger.domain.category`` and
``budgetledger.domain.jobs``; they are not re-exported here because they
depend on the database layer, which itself imports these entities.
"""

from budgetledger.domain.entities import (
    Category,
    CategoryInput,
    ChangeType,
    RecurringCategory,
    TransactionLogEntry,
    UpdateMode,
)
from budgetledger.domain.errors import DomainError

__all__ = [
    "Category",
    "CategoryInput",
    "ChangeType",
    "RecurringCategory",
    "TransactionLogEntry",
    "UpdateMode",
    "DomainError",
]
