"""Database factory functions for creating database instances."""

from datetime import timedelta
from pathlib import Path
from typing import Optional

from budgetledger.config import LedgerSettings, load_settings
from budgetledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, settings: Optional[LedgerSettings] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, uses the
            configured path (BUDGETLEDGER_DB_PATH, then
            ~/.budgetledger/budgetledger.db)
        settings: Settings to take the path and log retention from. Loaded
            from the environment when omitted.

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if settings is None:
        settings = load_settings()

    if database_path is None:
        database_path = settings.db_path

    Path(database_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

    database_url = f"sqlite:///{Path(database_path).expanduser()}"
    return SQLAlchemyDatabase(
        database_url, log_retention=timedelta(hours=settings.log_retention_hours)
    )
