"""Category ledger domain service."""

from dataclasses import replace
from typing import Iterable, Optional, Sequence, Union

from budgetledger.database.base import Database
from budgetledger.domain.entities import (
    LOAN,
    SAVINGS,
    Category,
    CategoryInput,
    ChangeType,
    RecurringCategory,
    TransactionLogEntry,
    UpdateMode,
    is_protected,
    normalize_name,
)
from budgetledger.domain.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    InternalInvariantError,
    NotFoundError,
    NotInitializedError,
    ValidationError,
    categories_already_exist,
    categories_not_found,
    category_not_found,
    duplicate_categories,
    insufficient_funds,
    protected_category,
)
from budgetledger.logging_setup import get_logger
from budgetledger.utils.amount_parser import AmountLike, coerce_amount

logger = get_logger(__name__)


class _LostUpdate(Exception):
    """A compare-and-swap write lost a race; the unit must be retried."""


def _require_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Invalid input: "name" (string) is required.')
    return name.strip()


def _normalize_inputs(inputs: Sequence[CategoryInput]) -> list[CategoryInput]:
    if not inputs:
        raise ValidationError("Input must be a non-empty list of categories.")
    normalized = []
    for entry in inputs:
        name = _require_name(entry.name)
        normalized.append(replace(entry, name=name, amount=coerce_amount(entry.amount)))
    return normalized


def _duplicates(names: Iterable[str]) -> list[str]:
    """Names whose normalized key was already seen earlier in names."""
    seen: set[str] = set()
    repeated = []
    for name in names:
        key = normalize_name(name)
        if key in seen:
            repeated.append(name)
        seen.add(key)
    return repeated


def _unique_by_key(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for name in names:
        key = normalize_name(name)
        if key not in seen:
            seen.add(key)
            result.append(name)
    return result


class CategoryService:
    """Service for the category ledger operations."""

    def __init__(self, db: Database, require_both_protected: bool = False, max_retries: int = 5):
        """Initialize category service.

        Args:
            db: Database instance
            require_both_protected: If True, initialization needs both "loan"
                and "savings"; otherwise either one is enough
            max_retries: Attempts for a write that keeps losing
                compare-and-swap races
        """
        self.db = db
        self.require_both_protected = require_both_protected
        self.max_retries = max_retries

    # Queries
    def get_category(self, name: str) -> Optional[Category]:
        """Get category by name (case-insensitive)."""
        return self.db.get_category(_require_name(name))

    def list_categories(
        self, recurring: bool = False
    ) -> Union[list[Category], list[RecurringCategory]]:
        """List categories, or recurring templates when recurring is True."""
        if recurring:
            return self.db.list_recurring_categories()
        return self.db.list_categories()

    def list_transaction_log(self) -> list[TransactionLogEntry]:
        """List revertible adjustments, newest first."""
        return self.db.list_log_entries()

    # Ledger operations
    def initialize_categories(self, inputs: Sequence[CategoryInput]) -> int:
        """Replace every category and recurring template with inputs.

        All inputs go into the category store; all but "loan" also become
        recurring templates.

        Returns:
            Number of categories inserted

        Raises:
            ValidationError: If the protected categories are missing or names repeat
            StorageError: If the stores cannot be cleared and refilled
        """
        entries = _normalize_inputs(inputs)
        keys = {entry.key for entry in entries}

        if self.require_both_protected:
            if LOAN not in keys or SAVINGS not in keys:
                raise ValidationError('The "loan" and "savings" categories are required.')
        elif LOAN not in keys and SAVINGS not in keys:
            raise ValidationError('The "loan" or "savings" category is required.')

        repeated = _duplicates(entry.name for entry in entries)
        if repeated:
            raise ValidationError(duplicate_categories(repeated))

        with self.db.atomic("initialize categories"):
            self.db.clear_categories()
            count = self.db.create_categories(entries)
            self.db.create_recurring_categories([e for e in entries if e.key != LOAN])

        logger.info("Initialized ledger with %d categories", count)
        return count

    def add_categories(self, inputs: Sequence[CategoryInput]) -> int:
        """Add categories to an initialized ledger.

        Entries with is_repeat also become recurring templates ("loan" never does).

        Returns:
            Number of categories inserted

        Raises:
            NotInitializedError: If either store is empty
            ValidationError: If inputs are empty or malformed
            ConflictError: If names repeat in inputs or already exist
        """
        if self.db.count_categories() == 0 or self.db.count_recurring_categories() == 0:
            raise NotInitializedError(
                "Categories not initialized yet. Please initialize the ledger first."
            )

        entries = _normalize_inputs(inputs)

        repeated = _duplicates(entry.name for entry in entries)
        if repeated:
            raise ConflictError(duplicate_categories(repeated))

        names = [entry.name for entry in entries]
        existing = _unique_by_key(
            self.db.find_existing_category_names(names) + self.db.find_existing_recurring_names(names)
        )
        if existing:
            raise ConflictError(categories_already_exist(existing))

        with self.db.atomic("add categories"):
            count = self.db.create_categories(entries)
            self.db.create_recurring_categories(
                [e for e in entries if e.is_repeat and e.key != LOAN]
            )

        logger.info("Added %d categories", count)
        return count

    def update_categories(
        self,
        mode: Union[UpdateMode, str],
        categories: Sequence[CategoryInput],
        strict: bool = False,
    ) -> int:
        """Overwrite amounts in the recurring (permanent) or live (temporary) store.

        Without strict, every matched name is updated and committed before
        the unmatched names are reported. With strict, nothing is written
        when any name is unmatched.

        Returns:
            Number of entries updated

        Raises:
            ValidationError: If mode or inputs are invalid
            ConflictError: If names repeat in the input
            NotFoundError: Listing every name with no match
        """
        try:
            mode = UpdateMode(mode)
        except ValueError:
            raise ValidationError('Mode must be either "permanent" or "temporary".')

        entries = _normalize_inputs(categories)
        repeated = _duplicates(entry.name for entry in entries)
        if repeated:
            raise ConflictError(duplicate_categories(repeated))

        if mode is UpdateMode.PERMANENT:
            set_amount = self.db.set_recurring_category_amount
            find_existing = self.db.find_existing_recurring_names
        else:
            set_amount = self.db.set_category_amount
            find_existing = self.db.find_existing_category_names

        if strict:
            found = {normalize_name(name) for name in find_existing([e.name for e in entries])}
            missing = [e.name for e in entries if e.key not in found]
            if missing:
                raise NotFoundError(categories_not_found(missing))

        updated = 0
        missing = []
        with self.db.atomic(f"update categories in {mode.value} mode"):
            for entry in entries:
                if set_amount(entry.name, entry.amount) is None:
                    missing.append(entry.name)
                else:
                    updated += 1

        logger.info("Updated %d categories in %s mode", updated, mode.value)
        if missing:
            raise NotFoundError(categories_not_found(missing))
        return updated

    def adjust_category(
        self, name: str, amount: AmountLike, change_type: Union[ChangeType, str]
    ) -> Category:
        """Add to or subtract from one category and log the change for undo.

        Returns:
            The updated category

        Raises:
            ValidationError: If the input is malformed or amount is negative
            NotFoundError: If the category does not exist
            InsufficientFundsError: If a subtraction would go below zero
            ConflictError: If concurrent writers kept winning the race
        """
        name = _require_name(name)
        amount = coerce_amount(amount)
        try:
            change_type = ChangeType(change_type)
        except ValueError:
            raise ValidationError('Invalid input: type must be "add" or "subtract".')

        for attempt in range(1, self.max_retries + 1):
            try:
                with self.db.atomic("adjust the category"):
                    category = self.db.get_category(name)
                    if category is None:
                        raise NotFoundError(category_not_found(name))

                    previous = category.amount
                    if change_type is ChangeType.ADD:
                        new_amount = previous + amount
                    else:
                        new_amount = previous - amount
                        if new_amount < 0:
                            raise InsufficientFundsError(
                                insufficient_funds(category.name, previous, amount)
                            )

                    if not self.db.compare_and_set_category_amount(
                        category.id, category.version, new_amount
                    ):
                        raise _LostUpdate()

                    self.db.append_log_entry(
                        category_id=category.id,
                        category_name=category.name,
                        change_type=change_type,
                        change_amount=amount,
                        previous_amount=previous,
                        new_amount=new_amount,
                    )
                    updated = self.db.get_category_by_id(category.id)
            except _LostUpdate:
                logger.debug("Lost update on '%s' (attempt %d), retrying", name, attempt)
                continue

            logger.info(
                "%s %s on '%s': %s -> %s",
                change_type.value.capitalize(),
                amount,
                updated.name,
                previous,
                new_amount,
            )
            return updated

        raise ConflictError(
            f'Category "{name}" kept changing concurrently; gave up after {self.max_retries} attempts.'
        )

    def pay_loan(self, name: str, amount: AmountLike) -> tuple[Category, Category]:
        """Pay amount off the loan out of the named category.

        Both balances move together or neither does.

        Returns:
            (updated category, updated loan)

        Raises:
            ValidationError: If amount is not positive or name is "loan"
            NotFoundError: If the named category does not exist
            InternalInvariantError: If the "loan" category is missing
            InsufficientFundsError: If either balance is below amount
        """
        name = _require_name(name)
        amount = coerce_amount(amount)
        if amount <= 0:
            raise ValidationError('"amount" must be greater than zero.')
        if normalize_name(name) == LOAN:
            raise ValidationError('Cannot pay the loan out of the "loan" category itself.')

        for attempt in range(1, self.max_retries + 1):
            try:
                with self.db.atomic("pay the loan"):
                    category = self.db.get_category(name)
                    if category is None:
                        raise NotFoundError(category_not_found(name))
                    loan = self.db.get_category(LOAN)
                    if loan is None:
                        raise InternalInvariantError('Internal error: "loan" category missing.')

                    if category.amount < amount:
                        raise InsufficientFundsError(
                            insufficient_funds(category.name, category.amount, amount)
                        )
                    if loan.amount < amount:
                        raise InsufficientFundsError(insufficient_funds(loan.name, loan.amount, amount))

                    if not self.db.compare_and_set_category_amount(
                        category.id, category.version, category.amount - amount
                    ) or not self.db.compare_and_set_category_amount(
                        loan.id, loan.version, loan.amount - amount
                    ):
                        raise _LostUpdate()

                    paid_from = self.db.get_category_by_id(category.id)
                    paid_loan = self.db.get_category_by_id(loan.id)
            except _LostUpdate:
                logger.debug("Lost update paying loan from '%s' (attempt %d), retrying", name, attempt)
                continue

            logger.info("Paid %s from '%s' and '%s'", amount, paid_from.name, paid_loan.name)
            return paid_from, paid_loan

        raise ConflictError(
            f'Loan payment from "{name}" kept conflicting; gave up after {self.max_retries} attempts.'
        )

    def revert_latest_transaction(self) -> Category:
        """Undo the most recent logged adjustment.

        Restores the category to the logged previous amount and removes the
        entry, so a second call reverts the next older entry.

        Returns:
            The restored category

        Raises:
            NotFoundError: If there is no entry or its category is gone
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                with self.db.atomic("revert the latest transaction"):
                    entry = self.db.get_latest_log_entry()
                    if entry is None:
                        raise NotFoundError("No transaction found to revert.")

                    category = self.db.get_category_by_id(entry.category_id)
                    if category is None:
                        raise NotFoundError(category_not_found(entry.category_name))

                    if not self.db.compare_and_set_category_amount(
                        category.id, category.version, entry.previous_amount
                    ):
                        raise _LostUpdate()
                    if not self.db.delete_log_entry(entry.id):
                        raise _LostUpdate()
                    restored = self.db.get_category_by_id(category.id)
            except _LostUpdate:
                logger.debug("Lost update reverting transaction (attempt %d), retrying", attempt)
                continue

            logger.info(
                "Reverted %s of %s on '%s': %s -> %s",
                entry.change_type.value,
                entry.change_amount,
                restored.name,
                entry.new_amount,
                restored.amount,
            )
            return restored

        raise ConflictError(
            f"Revert kept conflicting with other writers; gave up after {self.max_retries} attempts."
        )

    def delete_categories(self, names: Sequence[str]) -> int:
        """Delete categories and their recurring templates.

        Returns:
            Number of rows deleted across both stores

        Raises:
            ValidationError: If names is empty
            ForbiddenError: If any name is "loan" or "savings"
            NotFoundError: If nothing matched
        """
        if not names:
            raise ValidationError("At least one category name is required.")
        names = [_require_name(name) for name in names]

        protected = _unique_by_key(name for name in names if is_protected(name))
        if protected:
            raise ForbiddenError(protected_category(protected))

        with self.db.atomic("delete categories"):
            deleted = self.db.delete_categories(names) + self.db.delete_recurring_categories(names)

        if deleted == 0:
            raise NotFoundError(f"No categories found matching: {', '.join(names)}")

        logger.info("Deleted %d entries for %s", deleted, ", ".join(names))
        return deleted
