"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from budgetledger.domain.entities import (
    Category,
    CategoryInput,
    ChangeType,
    RecurringCategory,
    TransactionLogEntry,
)


class Database(ABC):
    """Abstract database interface for budgetledger.

    Every name argument is matched on its normalized key (trimmed,
    lowercased). Absence is reported as None, False or 0, never raised.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Unit of work
    @abstractmethod
    def atomic(self, operation: str = "complete the operation") -> AbstractContextManager[None]:
        """Group every read and write inside the block into one transaction.

        Nested blocks join the outermost one. On an exception the whole
        unit is rolled back; storage failures are re-raised as StorageError.
        """
        pass

    @abstractmethod
    def savepoint(self) -> AbstractContextManager[None]:
        """Run the block as an independent step inside the current unit.

        An exception rolls back only the block's own writes and propagates.
        """
        pass

    # Category store
    @abstractmethod
    def get_category(self, name: str) -> Optional[Category]:
        """Get category by name."""
        pass

    @abstractmethod
    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """List all categories."""
        pass

    @abstractmethod
    def count_categories(self) -> int:
        """Count stored categories."""
        pass

    @abstractmethod
    def find_existing_category_names(self, names: Iterable[str]) -> list[str]:
        """Return the stored names of categories matching any of names."""
        pass

    @abstractmethod
    def create_categories(self, entries: Iterable[CategoryInput]) -> int:
        """Insert categories. Returns number inserted."""
        pass

    @abstractmethod
    def set_category_amount(self, name: str, amount: Decimal) -> Optional[Category]:
        """Overwrite a category balance. Returns the updated category."""
        pass

    @abstractmethod
    def compare_and_set_category_amount(
        self, category_id: int, expected_version: int, new_amount: Decimal
    ) -> bool:
        """Write new_amount only if the row is still at expected_version."""
        pass

    @abstractmethod
    def increment_category_amount(self, name: str, delta: Decimal) -> Optional[Category]:
        """Atomically add delta (may be negative) to a category balance."""
        pass

    @abstractmethod
    def reset_category_amounts(self, exclude_names: Iterable[str]) -> int:
        """Set every balance except the excluded ones to zero. Returns count."""
        pass

    @abstractmethod
    def delete_categories(self, names: Iterable[str]) -> int:
        """Delete categories by name. Returns number deleted."""
        pass

    @abstractmethod
    def clear_categories(self) -> None:
        """Remove every category and every recurring template."""
        pass

    # Recurring template store
    @abstractmethod
    def get_recurring_category(self, name: str) -> Optional[RecurringCategory]:
        """Get recurring template by name."""
        pass

    @abstractmethod
    def list_recurring_categories(self) -> list[RecurringCategory]:
        """List all recurring templates."""
        pass

    @abstractmethod
    def count_recurring_categories(self) -> int:
        """Count stored recurring templates."""
        pass

    @abstractmethod
    def find_existing_recurring_names(self, names: Iterable[str]) -> list[str]:
        """Return the stored names of templates matching any of names."""
        pass

    @abstractmethod
    def create_recurring_categories(self, entries: Iterable[CategoryInput]) -> int:
        """Insert recurring templates. Returns number inserted."""
        pass

    @abstractmethod
    def set_recurring_category_amount(
        self, name: str, amount: Decimal
    ) -> Optional[RecurringCategory]:
        """Overwrite a recurring template amount."""
        pass

    @abstractmethod
    def delete_recurring_categories(self, names: Iterable[str]) -> int:
        """Delete recurring templates by name. Returns number deleted."""
        pass

    # Transaction log
    @abstractmethod
    def append_log_entry(
        self,
        category_id: int,
        category_name: str,
        change_type: ChangeType,
        change_amount: Decimal,
        previous_amount: Decimal,
        new_amount: Decimal,
    ) -> TransactionLogEntry:
        """Append a log entry that expires after the retention window."""
        pass

    @abstractmethod
    def get_latest_log_entry(self, now: Optional[datetime] = None) -> Optional[TransactionLogEntry]:
        """Get the most recently created unexpired log entry."""
        pass

    @abstractmethod
    def list_log_entries(self, now: Optional[datetime] = None) -> list[TransactionLogEntry]:
        """List unexpired log entries, newest first."""
        pass

    @abstractmethod
    def delete_log_entry(self, entry_id: int) -> bool:
        """Delete a log entry. Returns False if it was already gone."""
        pass

    @abstractmethod
    def purge_expired_log_entries(self, now: Optional[datetime] = None) -> int:
        """Delete expired log entries. Returns number deleted."""
        pass

    # Scheduled job cycles
    @abstractmethod
    def job_run_exists(self, job_name: str, cycle_id: str) -> bool:
        """Check whether a job already completed the given cycle."""
        pass

    @abstractmethod
    def record_job_run(self, job_name: str, cycle_id: str) -> None:
        """Record that a job completed the given cycle."""
        pass
