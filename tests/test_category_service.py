"""Tests for CategoryService ledger operations."""

import pytest
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from budgetledger.database.sqlalchemy_db import SQLAlchemyDatabase
from budgetledger.domain.category import CategoryService
from budgetledger.domain.entities import CategoryInput, ChangeType, UpdateMode
from budgetledger.domain.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InsufficientFundsError,
    InternalInvariantError,
    NotFoundError,
    NotInitializedError,
    StorageError,
    ValidationError,
)


def entry(name, amount, **kwargs):
    return CategoryInput(name=name, amount=Decimal(str(amount)), **kwargs)


class TestInitializeCategories:
    """Tests for initialize_categories."""

    def test_initialize_fills_both_stores(self, category_service, temp_db):
        count = category_service.initialize_categories(
            [entry("loan", 500), entry("savings", 0), entry("groceries", 200)]
        )

        assert count == 3
        assert temp_db.count_categories() == 3
        recurring = [r.name for r in temp_db.list_recurring_categories()]
        assert recurring == ["groceries", "savings"]

    def test_initialize_replaces_previous_state(self, ledger, temp_db):
        ledger.initialize_categories([entry("savings", 5), entry("rent", 900)])

        assert [c.name for c in temp_db.list_categories()] == ["rent", "savings"]
        assert temp_db.get_category("groceries") is None
        assert temp_db.get_recurring_category("groceries") is None

    def test_either_protected_category_is_enough(self, category_service):
        assert category_service.initialize_categories([entry("loan", 0), entry("fun", 1)]) == 2
        assert category_service.initialize_categories([entry("Savings", 0)]) == 1

    def test_requires_a_protected_category(self, category_service, temp_db):
        with pytest.raises(ValidationError, match='"loan" or "savings"'):
            category_service.initialize_categories([entry("groceries", 10)])
        assert temp_db.count_categories() == 0

    def test_require_both_protected(self, temp_db):
        service = CategoryService(temp_db, require_both_protected=True)

        with pytest.raises(ValidationError, match='"loan" and "savings"'):
            service.initialize_categories([entry("loan", 0), entry("fun", 1)])
        assert service.initialize_categories([entry("loan", 0), entry("savings", 0)]) == 2

    def test_duplicate_names_rejected(self, ledger, balance_of):
        with pytest.raises(ValidationError, match="Duplicate category in input: Savings"):
            ledger.initialize_categories([entry("savings", 1), entry("Savings", 2)])
        # previous state untouched
        assert balance_of("groceries") == Decimal("100")

    def test_empty_input_rejected(self, category_service):
        with pytest.raises(ValidationError):
            category_service.initialize_categories([])

    def test_negative_amount_rejected(self, category_service):
        with pytest.raises(ValidationError, match="non-negative"):
            category_service.initialize_categories([entry("savings", -1)])


class TestAddCategories:
    """Tests for add_categories."""

    def test_add_requires_initialization(self, category_service):
        with pytest.raises(NotInitializedError):
            category_service.add_categories([entry("fun", 10)])

    def test_not_initialized_is_a_validation_error(self):
        assert issubclass(NotInitializedError, ValidationError)

    def test_add_repeat_and_once(self, ledger, temp_db):
        count = ledger.add_categories(
            [entry("fun", 10), entry("gift", 30, is_repeat=False, is_add_to_savings=False)]
        )

        assert count == 2
        assert temp_db.get_recurring_category("fun").amount == Decimal("10")
        assert temp_db.get_recurring_category("gift") is None
        gift = temp_db.get_category("gift")
        assert gift.amount == Decimal("30")
        assert gift.is_add_to_savings is False

    def test_add_conflicts_list_every_name(self, ledger, temp_db):
        with pytest.raises(ConflictError) as exc_info:
            ledger.add_categories([entry("GROCERIES", 1), entry("Savings", 1), entry("new", 1)])

        message = str(exc_info.value)
        assert "groceries" in message
        assert "savings" in message
        assert temp_db.get_category("new") is None

    def test_add_conflicts_with_recurring_only_name(self, ledger, temp_db):
        temp_db.delete_categories(["groceries"])

        with pytest.raises(ConflictError, match="groceries"):
            ledger.add_categories([entry("groceries", 5)])

    def test_add_duplicate_in_input(self, ledger):
        with pytest.raises(ConflictError, match="Duplicate"):
            ledger.add_categories([entry("fun", 1), entry(" FUN ", 2)])

    def test_add_loan_never_becomes_recurring(self, category_service, temp_db):
        category_service.initialize_categories([entry("savings", 0)])

        category_service.add_categories([entry("loan", 100)])

        assert temp_db.get_category("loan").amount == Decimal("100")
        assert temp_db.get_recurring_category("loan") is None


class TestUpdateCategories:
    """Tests for update_categories."""

    def test_temporary_updates_live_balance(self, ledger, temp_db, balance_of):
        updated = ledger.update_categories("temporary", [entry("groceries", 250)])

        assert updated == 1
        assert balance_of("groceries") == Decimal("250")
        assert temp_db.get_recurring_category("groceries").amount == Decimal("100")

    def test_permanent_updates_template_only(self, ledger, temp_db, balance_of):
        ledger.update_categories(UpdateMode.PERMANENT, [entry("Groceries", 250)])

        assert temp_db.get_recurring_category("groceries").amount == Decimal("250")
        assert balance_of("groceries") == Decimal("100")

    def test_invalid_mode(self, ledger):
        with pytest.raises(ValidationError, match='"permanent" or "temporary"'):
            ledger.update_categories("forever", [entry("groceries", 1)])

    def test_partial_application_reports_missing(self, ledger, balance_of):
        with pytest.raises(NotFoundError, match="Categories not found for update: ghost"):
            ledger.update_categories("temporary", [entry("groceries", 5), entry("ghost", 5)])
        # groceries committed despite the miss
        assert balance_of("groceries") == Decimal("5")

    def test_strict_applies_nothing(self, temp_db, balance_of, ledger):
        strict_service = CategoryService(temp_db)

        with pytest.raises(NotFoundError, match="ghost"):
            strict_service.update_categories(
                "temporary", [entry("groceries", 5), entry("ghost", 5)], strict=True
            )
        assert balance_of("groceries") == Decimal("100")

    def test_loan_has_no_template(self, ledger):
        with pytest.raises(NotFoundError, match="loan"):
            ledger.update_categories("permanent", [entry("loan", 5)])

    def test_duplicate_in_input(self, ledger):
        with pytest.raises(ConflictError):
            ledger.update_categories("temporary", [entry("groceries", 5), entry("GROCERIES", 6)])


class TestAdjustCategory:
    """Tests for adjust_category."""

    def test_add(self, ledger):
        updated = ledger.adjust_category("Groceries", Decimal("25.50"), ChangeType.ADD)

        assert updated.amount == Decimal("125.50")

    def test_subtract_logs_entry(self, ledger, temp_db):
        ledger.adjust_category("groceries", 40, "subtract")

        entry_ = temp_db.get_latest_log_entry()
        assert entry_.category_name == "groceries"
        assert entry_.change_type is ChangeType.SUBTRACT
        assert entry_.change_amount == Decimal("40")
        assert entry_.previous_amount == Decimal("100")
        assert entry_.new_amount == Decimal("60")

    def test_subtract_to_exactly_zero(self, ledger, balance_of):
        ledger.adjust_category("groceries", 100, ChangeType.SUBTRACT)
        assert balance_of("groceries") == Decimal("0")

    def test_insufficient_funds(self, ledger, temp_db, balance_of):
        with pytest.raises(InsufficientFundsError, match="groceries"):
            ledger.adjust_category("groceries", Decimal("100.01"), ChangeType.SUBTRACT)

        assert balance_of("groceries") == Decimal("100")
        assert temp_db.get_latest_log_entry() is None

    def test_missing_category(self, ledger):
        with pytest.raises(NotFoundError, match='Category "ghost" not found.'):
            ledger.adjust_category("ghost", 1, ChangeType.ADD)

    def test_negative_amount(self, ledger):
        with pytest.raises(ValidationError):
            ledger.adjust_category("groceries", -5, ChangeType.ADD)

    def test_invalid_type(self, ledger):
        with pytest.raises(ValidationError, match='"add" or "subtract"'):
            ledger.adjust_category("groceries", 5, "multiply")

    def test_blank_name(self, ledger):
        with pytest.raises(ValidationError):
            ledger.adjust_category("   ", 5, ChangeType.ADD)

    def test_sub_cent_amounts_round_to_cents(self, ledger, temp_db, balance_of):
        ledger.adjust_category("groceries", "0.004", ChangeType.ADD)
        ledger.adjust_category("groceries", "0.005", ChangeType.ADD)

        latest = temp_db.get_latest_log_entry()
        assert latest.change_amount == Decimal("0.01")
        assert latest.new_amount == latest.previous_amount + latest.change_amount
        assert balance_of("groceries") == Decimal("100.01")

    def test_cent_adjustments_are_exact(self, ledger, balance_of):
        for _ in range(3):
            ledger.adjust_category("savings", "0.1", ChangeType.ADD)

        ledger.adjust_category("savings", "0.3", ChangeType.SUBTRACT)

        assert balance_of("savings") == Decimal("0")

    def test_lost_update_is_retried(self, ledger, temp_db, balance_of, monkeypatch):
        original = temp_db.compare_and_set_category_amount
        calls = []

        def flaky(category_id, expected_version, new_amount):
            calls.append(expected_version)
            if len(calls) == 1:
                return False
            return original(category_id, expected_version, new_amount)

        monkeypatch.setattr(temp_db, "compare_and_set_category_amount", flaky)

        ledger.adjust_category("groceries", 10, ChangeType.ADD)

        assert len(calls) == 2
        assert balance_of("groceries") == Decimal("110")

    def test_gives_up_after_max_retries(self, temp_db, ledger, balance_of, monkeypatch):
        service = CategoryService(temp_db, max_retries=3)
        monkeypatch.setattr(temp_db, "compare_and_set_category_amount", lambda *args: False)

        with pytest.raises(ConflictError, match="3 attempts"):
            service.adjust_category("groceries", 10, ChangeType.ADD)
        assert balance_of("groceries") == Decimal("100")
        assert temp_db.get_latest_log_entry() is None


class TestPayLoan:
    """Tests for pay_loan."""

    @pytest.fixture
    def loaded(self, ledger):
        ledger.update_categories("temporary", [entry("loan", 500), entry("savings", 300)])
        return ledger

    def test_pay_loan(self, loaded, balance_of):
        paid_from, loan = loaded.pay_loan("savings", 200)

        assert paid_from.amount == Decimal("100")
        assert loan.amount == Decimal("300")
        assert balance_of("savings") == Decimal("100")
        assert balance_of("loan") == Decimal("300")

    def test_pay_loan_is_not_logged(self, loaded, temp_db):
        loaded.pay_loan("groceries", 50)
        assert temp_db.get_latest_log_entry() is None

    def test_insufficient_in_category(self, loaded, balance_of):
        with pytest.raises(InsufficientFundsError, match='"groceries"'):
            loaded.pay_loan("groceries", 150)
        assert balance_of("groceries") == Decimal("100")
        assert balance_of("loan") == Decimal("500")

    def test_insufficient_in_loan(self, loaded, balance_of):
        loaded.update_categories("temporary", [entry("loan", 20)])

        with pytest.raises(InsufficientFundsError, match='"loan"'):
            loaded.pay_loan("savings", 50)
        assert balance_of("savings") == Decimal("300")

    def test_failed_loan_write_leaves_both_balances(self, loaded, temp_db, balance_of, monkeypatch):
        loan_id = temp_db.get_category("loan").id
        original = temp_db.compare_and_set_category_amount

        def fail_on_loan(category_id, expected_version, new_amount):
            if category_id == loan_id:
                raise SQLAlchemyError("disk I/O error")
            return original(category_id, expected_version, new_amount)

        monkeypatch.setattr(temp_db, "compare_and_set_category_amount", fail_on_loan)

        with pytest.raises(StorageError, match="pay the loan"):
            loaded.pay_loan("savings", 200)

        assert balance_of("savings") == Decimal("300")
        assert balance_of("loan") == Decimal("500")

    @pytest.mark.parametrize("amount", [0, -10])
    def test_amount_must_be_positive(self, loaded, amount):
        with pytest.raises(ValidationError):
            loaded.pay_loan("savings", amount)

    def test_cannot_pay_from_loan(self, loaded):
        with pytest.raises(ValidationError):
            loaded.pay_loan("LOAN", 10)

    def test_missing_category(self, loaded):
        with pytest.raises(NotFoundError):
            loaded.pay_loan("ghost", 10)

    def test_missing_loan(self, category_service):
        category_service.initialize_categories([entry("savings", 100)])

        with pytest.raises(InternalInvariantError, match='"loan" category missing'):
            category_service.pay_loan("savings", 10)


class TestRevertLatestTransaction:
    """Tests for revert_latest_transaction."""

    def test_revert_restores_previous(self, ledger, balance_of):
        ledger.adjust_category("groceries", 30, ChangeType.SUBTRACT)

        restored = ledger.revert_latest_transaction()

        assert restored.amount == Decimal("100")
        assert balance_of("groceries") == Decimal("100")

    def test_repeated_reverts_walk_back(self, ledger, balance_of):
        ledger.adjust_category("groceries", 30, ChangeType.SUBTRACT)
        ledger.adjust_category("savings", 40, ChangeType.ADD)

        assert ledger.revert_latest_transaction().name == "savings"
        assert ledger.revert_latest_transaction().name == "groceries"
        assert balance_of("savings") == Decimal("0")
        assert balance_of("groceries") == Decimal("100")

        with pytest.raises(NotFoundError, match="No transaction found to revert."):
            ledger.revert_latest_transaction()

    def test_nothing_to_revert(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.revert_latest_transaction()

    def test_category_deleted_since(self, ledger):
        ledger.add_categories([entry("fun", 10)])
        ledger.adjust_category("fun", 5, ChangeType.ADD)
        ledger.delete_categories(["fun"])

        with pytest.raises(NotFoundError, match='Category "fun" not found.'):
            ledger.revert_latest_transaction()

    def test_expired_entry_is_not_revertible(self, settings):
        db = SQLAlchemyDatabase(f"sqlite:///{settings.db_path}", log_retention=timedelta(0))
        try:
            service = CategoryService(db)
            service.initialize_categories([entry("savings", 10)])
            service.adjust_category("savings", 5, ChangeType.ADD)

            with pytest.raises(NotFoundError):
                service.revert_latest_transaction()
        finally:
            db.disconnect()


class TestDeleteCategories:
    """Tests for delete_categories."""

    def test_delete_from_both_stores(self, ledger, temp_db):
        deleted = ledger.delete_categories(["Groceries"])

        assert deleted == 2
        assert temp_db.get_category("groceries") is None
        assert temp_db.get_recurring_category("groceries") is None

    def test_delete_once_category(self, ledger):
        ledger.add_categories([entry("gift", 5, is_repeat=False)])
        assert ledger.delete_categories(["gift"]) == 1

    def test_protected_names_forbidden(self, ledger, temp_db):
        with pytest.raises(ForbiddenError, match="Cannot delete protected categories: SAVINGS"):
            ledger.delete_categories(["groceries", "SAVINGS"])
        assert temp_db.get_category("groceries") is not None

    def test_nothing_matched(self, ledger):
        with pytest.raises(NotFoundError, match="ghost"):
            ledger.delete_categories(["ghost"])

    def test_empty_input(self, ledger):
        with pytest.raises(ValidationError):
            ledger.delete_categories([])


class TestQueries:
    """Tests for the read-only listings."""

    def test_list_categories(self, ledger):
        assert [c.name for c in ledger.list_categories()] == ["groceries", "loan", "savings"]
        assert [c.name for c in ledger.list_categories(recurring=True)] == ["groceries", "savings"]

    def test_list_transaction_log(self, ledger):
        ledger.adjust_category("groceries", 1, ChangeType.ADD)
        ledger.adjust_category("groceries", 2, ChangeType.ADD)

        log = ledger.list_transaction_log()
        assert [e.change_amount for e in log] == [Decimal("2"), Decimal("1")]

    def test_get_category(self, ledger):
        assert ledger.get_category("GROCERIES").amount == Decimal("100")
        assert ledger.get_category("ghost") is None


def test_domain_errors_are_value_errors():
    """Every domain error can be caught as ValueError."""
    for error in (ValidationError, NotFoundError, ConflictError, ForbiddenError):
        assert issubclass(error, DomainError)
        assert issubclass(error, ValueError)
