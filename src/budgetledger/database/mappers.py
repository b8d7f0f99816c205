"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so services never hold ORM rows
that might expire once their session commits.
"""

from budgetledger.domain import entities as domain
from budgetledger.database.models import (
    Category as ORMCategory,
    RecurringCategory as ORMRecurringCategory,
    TransactionLog as ORMTransactionLog,
)


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        amount=orm_category.amount,
        is_add_to_savings=orm_category.is_add_to_savings,
        version=orm_category.version,
        created_at=orm_category.created_at,
        updated_at=orm_category.updated_at,
    )


def recurring_category_to_domain(
    orm_recurring: ORMRecurringCategory,
) -> domain.RecurringCategory:
    """Convert SQLAlchemy RecurringCategory model to domain entity."""
    return domain.RecurringCategory(
        id=orm_recurring.id,
        name=orm_recurring.name,
        amount=orm_recurring.amount,
        created_at=orm_recurring.created_at,
        updated_at=orm_recurring.updated_at,
    )


def transaction_log_to_domain(orm_entry: ORMTransactionLog) -> domain.TransactionLogEntry:
    """Convert SQLAlchemy TransactionLog model to domain TransactionLogEntry."""
    return domain.TransactionLogEntry(
        id=orm_entry.id,
        category_id=orm_entry.category_id,
        category_name=orm_entry.category_name,
        change_type=domain.ChangeType(orm_entry.change_type),
        change_amount=orm_entry.change_amount,
        previous_amount=orm_entry.previous_amount,
        new_amount=orm_entry.new_amount,
        created_at=orm_entry.created_at,
        expires_at=orm_entry.expires_at,
    )
