"""
In-Memory Storage Implementation

Records live in a dict keyed by id, one dict per collection.
Used for tests, demos, and as the default when no database is set up.

Id assignment and insertion share one lock, so concurrent callers
can never be handed the same id. Ids come from a private counter and
are never reused, even after the highest record is deleted.
"""

import threading
from typing import Optional

from finance_tracker.models.records import (
    ExpenseCreate,
    ExpenseRecord,
    SalaryCreate,
    SalaryRecord,
    SalaryUpdate,
    ensure_utc,
    utc_now,
)
from finance_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    SalaryStorageInterface,
)


class _Collection:
    """Id-keyed map plus its counter, guarded by one lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict = {}
        self._next_id = 1

    def insert(self, build):
        """Call build(id, created_at) under the lock and store the result."""
        with self._lock:
            record_id = self._next_id
            self._next_id += 1
            record = build(record_id, utc_now())
            self._rows[record_id] = record
            return record

    def get(self, record_id: int):
        return self._rows.get(record_id)

    def replace(self, record_id: int, modify):
        """Swap in modify(current) if the id exists; return the new value."""
        with self._lock:
            current = self._rows.get(record_id)
            if current is None:
                return None
            updated = modify(current)
            self._rows[record_id] = updated
            return updated

    def remove(self, record_id: int) -> bool:
        with self._lock:
            return self._rows.pop(record_id, None) is not None

    def ordered(self) -> list:
        with self._lock:
            rows = list(self._rows.values())
        return sorted(rows, key=lambda r: (r.date, r.id))


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """In-process expense collection."""

    def __init__(self):
        self._collection = _Collection()

    async def list_expenses(self) -> list[ExpenseRecord]:
        return self._collection.ordered()

    async def get_expense_by_id(self, expense_id: int) -> Optional[ExpenseRecord]:
        return self._collection.get(expense_id)

    async def create_expense(self, payload: ExpenseCreate) -> ExpenseRecord:
        def build(record_id, created_at):
            return ExpenseRecord(
                id=record_id,
                category=payload.category,
                description=payload.description,
                amount=payload.amount,
                date=ensure_utc(payload.date) if payload.date else created_at,
                created_at=created_at,
            )

        return self._collection.insert(build)

    async def delete_expense(self, expense_id: int) -> bool:
        return self._collection.remove(expense_id)


class InMemorySalaryStorage(SalaryStorageInterface):
    """In-process salary collection."""

    def __init__(self):
        self._collection = _Collection()

    async def list_salaries(self) -> list[SalaryRecord]:
        return self._collection.ordered()

    async def get_salary_by_id(self, salary_id: int) -> Optional[SalaryRecord]:
        return self._collection.get(salary_id)

    async def create_salary(self, payload: SalaryCreate) -> SalaryRecord:
        def build(record_id, created_at):
            return SalaryRecord(
                id=record_id,
                amount=payload.amount,
                month=payload.month,
                year=payload.year,
                notes=payload.notes,
                date=ensure_utc(payload.date) if payload.date else created_at,
                created_at=created_at,
            )

        return self._collection.insert(build)

    async def update_salary(
        self,
        salary_id: int,
        changes: SalaryUpdate,
    ) -> Optional[SalaryRecord]:
        return self._collection.replace(
            salary_id,
            lambda current: current.model_copy(update=changes.changes()),
        )

    async def delete_salary(self, salary_id: int) -> bool:
        return self._collection.remove(salary_id)
