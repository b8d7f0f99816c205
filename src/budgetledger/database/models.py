"""SQLAlchemy models for budgetledger database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, sessionmaker, scoped_session, Session

Base = declarative_base()


def utcnow() -> datetime:
    """Timestamp used for every created_at/updated_at column."""
    return datetime.now(UTC)


class Category(Base):
    """Budget category with its live balance."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    # trimmed, lowercased name; all lookups go through this column
    name_key = Column(String, unique=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    is_add_to_savings = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_categories_amount_non_negative"),
    )


class RecurringCategory(Base):
    """Recurring contribution re-applied to a category on every rollover."""

    __tablename__ = "recurring_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    name_key = Column(String, unique=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_recurring_amount_non_negative"),
    )


class TransactionLog(Base):
    """Single-category adjustment, retained until expires_at."""

    __tablename__ = "transaction_logs"

    id = Column(Integer, primary_key=True)
    # plain reference: the entry must survive the category being deleted
    category_id = Column(Integer, nullable=False)
    category_name = Column(String, nullable=False)
    change_type = Column(String, nullable=False)
    change_amount = Column(Numeric(12, 2), nullable=False)
    previous_amount = Column(Numeric(12, 2), nullable=False)
    new_amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("change_type IN ('add', 'subtract')", name="ck_logs_change_type"),
        CheckConstraint(
            "change_amount >= 0 AND previous_amount >= 0 AND new_amount >= 0",
            name="ck_logs_amounts_non_negative",
        ),
    )


class JobRun(Base):
    """Completed scheduled-job cycle."""

    __tablename__ = "job_runs"

    id = Column(Integer, primary_key=True)
    job_name = Column(String, nullable=False)
    cycle_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("job_name", "cycle_id", name="uq_job_cycle"),)


def _enable_sqlite_transactions(engine) -> None:
    """Let SQLAlchemy own BEGIN so savepoints work and writers serialize.

    pysqlite defers BEGIN until the first write, which leaves reads outside
    the transaction. Emitting BEGIN IMMEDIATE takes the write lock up front,
    so a read-modify-write unit sees a stable snapshot.
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(database_url: str) -> scoped_session[Session]:
    """Create a thread-local SQLAlchemy session registry."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if database_url.startswith("sqlite"):
        _enable_sqlite_transactions(engine)
    Base.metadata.create_all(engine)
    return scoped_session(sessionmaker(bind=engine))
