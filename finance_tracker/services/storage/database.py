"""
Relational Storage Implementation (SQLAlchemy)

DESIGN DECISION: One table per collection, columns mirroring the
JSON shape. SQLite works out of the box for local use; point
DATABASE_URL at PostgreSQL for production.

- amount is NUMERIC(10, 2), read back as Decimal and re-quantized
- timestamps are written as UTC and read back as aware UTC datetimes
- SQLite tables use AUTOINCREMENT so deleted ids are never handed out again
- ids are 64-bit on every backend, matching the range the API accepts
- blocking driver calls run on the threadpool so the event loop stays free

The implementation follows the abstract interface, so callers never
know which backend is active.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Callable, Iterator, Optional, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    Numeric,
    Text,
    create_engine,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from finance_tracker.config import DatabaseSettings
from finance_tracker.models.records import (
    AMOUNT_QUANTUM,
    ExpenseCreate,
    ExpenseRecord,
    Month,
    SalaryCreate,
    SalaryRecord,
    SalaryUpdate,
    ensure_utc,
    utc_now,
)
from finance_tracker.services.storage.interface import (
    ConnectionError,
    ExpenseStorageInterface,
    SalaryStorageInterface,
    StorageError,
)


T = TypeVar("T")

Base = declarative_base()

# BIGINT everywhere except SQLite, where AUTOINCREMENT needs INTEGER (already 64-bit)
RecordId = BigInteger().with_variant(Integer, "sqlite")


# --- Tables ---

class _ExpenseColumns:
    id = Column(RecordId, primary_key=True, autoincrement=True)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ExpenseRow(_ExpenseColumns, Base):
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}


class IndianExpenseRow(_ExpenseColumns, Base):
    __tablename__ = "indian_expenses"
    __table_args__ = {"sqlite_autoincrement": True}


class SalaryRow(Base):
    __tablename__ = "salaries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(RecordId, primary_key=True, autoincrement=True)
    amount = Column(Numeric(10, 2), nullable=False)
    month = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


# --- Connection ---

class DatabaseClient:
    """
    Low-level database wrapper.

    Owns the engine and session factory. The engine is created lazily
    on first use.
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or DatabaseSettings()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def connect(self) -> Engine:
        """Create the engine if needed."""
        if self._engine is None:
            connect_args = {"check_same_thread": False} if self._settings.is_sqlite else {}
            try:
                self._engine = create_engine(
                    self._settings.url,
                    echo=self._settings.echo,
                    connect_args=connect_args,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to create database engine: {e}") from e
            self._session_factory = sessionmaker(
                bind=self._engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._engine

    def create_tables(self) -> None:
        """Create any missing tables. Existing tables are left untouched."""
        try:
            Base.metadata.create_all(bind=self.connect())
        except Exception as e:
            raise ConnectionError(f"Failed to initialize database: {e}") from e

    @contextmanager
    def session(self) -> Iterator[Session]:
        self.connect()
        with self._session_factory() as session:
            yield session

    async def run(self, work: Callable[[Session], T]) -> T:
        """Run `work` inside a fresh session on a worker thread."""
        def in_session() -> T:
            with self.session() as session:
                return work(session)

        return await run_in_threadpool(in_session)

    def ping(self) -> bool:
        """Run a trivial query; raises ConnectionError if it fails."""
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            raise ConnectionError(f"Database is unreachable: {e}") from e

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None


def _amount(value) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM)


# --- Collections ---

class DatabaseExpenseStorage(ExpenseStorageInterface):
    """
    SQLAlchemy implementation of one expense collection.

    `row_type` selects the table (ExpenseRow or IndianExpenseRow).
    """

    def __init__(self, client: DatabaseClient, row_type=ExpenseRow):
        self._client = client
        self._row_type = row_type

    def _row_to_expense(self, row) -> ExpenseRecord:
        return ExpenseRecord(
            id=row.id,
            category=row.category,
            description=row.description,
            amount=_amount(row.amount),
            date=ensure_utc(row.date),
            created_at=ensure_utc(row.created_at),
        )

    async def list_expenses(self) -> list[ExpenseRecord]:
        """List expenses ordered by date, then id."""
        table = self._row_type

        def work(session: Session) -> list[ExpenseRecord]:
            rows = session.scalars(select(table).order_by(table.date, table.id)).all()
            return [self._row_to_expense(row) for row in rows]

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to list {table.__tablename__}: {e}") from e

    async def get_expense_by_id(self, expense_id: int) -> Optional[ExpenseRecord]:
        def work(session: Session) -> Optional[ExpenseRecord]:
            row = session.get(self._row_type, expense_id)
            return self._row_to_expense(row) if row is not None else None

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to get expense {expense_id}: {e}") from e

    async def create_expense(self, payload: ExpenseCreate) -> ExpenseRecord:
        now = utc_now()
        row = self._row_type(
            category=payload.category,
            description=payload.description,
            amount=payload.amount,
            date=ensure_utc(payload.date) if payload.date else now,
            created_at=now,
        )

        def work(session: Session) -> ExpenseRecord:
            session.add(row)
            session.commit()
            return self._row_to_expense(row)

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to create expense: {e}") from e

    async def delete_expense(self, expense_id: int) -> bool:
        def work(session: Session) -> bool:
            row = session.get(self._row_type, expense_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to delete expense {expense_id}: {e}") from e


class DatabaseSalaryStorage(SalaryStorageInterface):
    """SQLAlchemy implementation of the salary collection."""

    def __init__(self, client: DatabaseClient):
        self._client = client

    def _row_to_salary(self, row: SalaryRow) -> SalaryRecord:
        return SalaryRecord(
            id=row.id,
            amount=_amount(row.amount),
            month=Month(row.month),
            year=row.year,
            notes=row.notes,
            date=ensure_utc(row.date),
            created_at=ensure_utc(row.created_at),
        )

    async def list_salaries(self) -> list[SalaryRecord]:
        def work(session: Session) -> list[SalaryRecord]:
            rows = session.scalars(
                select(SalaryRow).order_by(SalaryRow.date, SalaryRow.id)
            ).all()
            return [self._row_to_salary(row) for row in rows]

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to list salaries: {e}") from e

    async def get_salary_by_id(self, salary_id: int) -> Optional[SalaryRecord]:
        def work(session: Session) -> Optional[SalaryRecord]:
            row = session.get(SalaryRow, salary_id)
            return self._row_to_salary(row) if row is not None else None

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to get salary {salary_id}: {e}") from e

    async def create_salary(self, payload: SalaryCreate) -> SalaryRecord:
        now = utc_now()
        row = SalaryRow(
            amount=payload.amount,
            month=payload.month.value,
            year=payload.year,
            notes=payload.notes,
            date=ensure_utc(payload.date) if payload.date else now,
            created_at=now,
        )

        def work(session: Session) -> SalaryRecord:
            session.add(row)
            session.commit()
            return self._row_to_salary(row)

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to create salary: {e}") from e

    async def update_salary(
        self,
        salary_id: int,
        changes: SalaryUpdate,
    ) -> Optional[SalaryRecord]:
        """Apply only the provided fields; last writer wins."""
        def work(session: Session) -> Optional[SalaryRecord]:
            row = session.get(SalaryRow, salary_id)
            if row is None:
                return None
            for name, value in changes.changes().items():
                setattr(row, name, value.value if isinstance(value, Month) else value)
            session.commit()
            return self._row_to_salary(row)

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to update salary {salary_id}: {e}") from e

    async def delete_salary(self, salary_id: int) -> bool:
        def work(session: Session) -> bool:
            row = session.get(SalaryRow, salary_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

        try:
            return await self._client.run(work)
        except Exception as e:
            raise StorageError(f"Failed to delete salary {salary_id}: {e}") from e
