"""Shared domain error messages and error types."""

from decimal import Decimal
from typing import Iterable


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotInitializedError(ValidationError):
    """Ledger has not been initialized with its starting categories."""


class NotFoundError(DomainError):
    """Requested category, recurring template or log entry does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class InsufficientFundsError(DomainError):
    """Operation would drive a category balance below zero."""


class ForbiddenError(DomainError):
    """Operation is not allowed on a protected category."""


class InternalInvariantError(DomainError):
    """An invariant that should always hold was found broken."""


class StorageError(DomainError):
    """Underlying persistence failed."""


def _join(names: Iterable[str]) -> str:
    return ", ".join(names)


def category_not_found(name: str) -> str:
    """Return message for missing category by name."""
    return f'Category "{name}" not found.'


def categories_not_found(names: Iterable[str]) -> str:
    """Return message for a batch of names with no match."""
    return f"Categories not found for update: {_join(names)}"


def duplicate_categories(names: Iterable[str]) -> str:
    """Return message for names repeated within one request."""
    return f"Duplicate category in input: {_join(names)}"


def categories_already_exist(names: Iterable[str]) -> str:
    """Return message for names that collide with stored categories."""
    return f"Categories already exist: {_join(names)}"


def insufficient_funds(name: str, current: Decimal, requested: Decimal) -> str:
    """Return message when a category cannot cover a debit."""
    return f'Insufficient funds in "{name}". Current: {current}, requested: {requested}.'


def protected_category(names: Iterable[str]) -> str:
    """Return message when a request touches protected categories."""
    return f"Cannot delete protected categories: {_join(names)}"


def storage_failure(operation: str) -> str:
    """Return the caller-facing message for a persistence failure."""
    return f"Storage failure while trying to {operation}. Please retry."
