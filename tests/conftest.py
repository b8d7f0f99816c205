"""Shared pytest fixtures for budgetledger tests."""

import tempfile
import os
from decimal import Decimal
import pytest

from budgetledger.config import LedgerSettings
from budgetledger.database.factories import create_sqlite_database
from budgetledger.domain.category import CategoryService
from budgetledger.domain.entities import CategoryInput
from budgetledger.domain.jobs import JobService


@pytest.fixture
def settings():
    """Settings pointing at a throwaway database path."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield LedgerSettings(db_path=db_path)
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def temp_db(settings):
    """Create a temporary database for testing."""
    db = create_sqlite_database(database_path=settings.db_path, settings=settings)
    # Store the path for tests that need it
    db.database_path = settings.db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def job_service(temp_db):
    """Create a JobService with a temporary database."""
    return JobService(temp_db, fixed_debit_amount=Decimal("965"))


@pytest.fixture
def ledger(category_service):
    """Initialize the ledger with loan, savings and groceries."""
    category_service.initialize_categories(
        [
            CategoryInput(name="loan", amount=Decimal("0")),
            CategoryInput(name="savings", amount=Decimal("0")),
            CategoryInput(name="groceries", amount=Decimal("100")),
        ]
    )
    return category_service


@pytest.fixture
def balance_of(temp_db):
    """Return a function reading the current balance of a category."""

    def _balance(name: str) -> Decimal:
        category = temp_db.get_category(name)
        assert category is not None, f"category {name!r} missing"
        return category.amount

    return _balance


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
