"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Record lifecycle (payload -> validate -> store -> log)
2. Views (query params -> validate -> read store -> filter/sort/summarize)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches storage before the whole payload is valid
- Storage failures are logged here, once, then propagated
- Every mutation is logged

HTTP handlers only talk to these flows; they never see which
backend is active.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from finance_tracker.activity import ActivityLogger
from finance_tracker.config import DatabaseSettings, get_settings
from finance_tracker.models.records import (
    ExpenseRecord,
    RecordKind,
    SalaryRecord,
    utc_now,
)
from finance_tracker.models.views import DashboardSummary, ExpenseSummary, Region
from finance_tracker.queries import (
    filter_expenses,
    sort_expenses,
    sort_salaries,
    summarize_dashboard,
    summarize_expenses,
)
from finance_tracker.services.storage import (
    DatabaseClient,
    DatabaseExpenseStorage,
    DatabaseSalaryStorage,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    InMemorySalaryStorage,
    IndianExpenseRow,
    NotFoundError,
    SalaryStorageInterface,
    StorageError,
)
from finance_tracker.validation import PayloadValidator, ValidationError


class _RecordFlow:
    """Shared plumbing: validation and storage-failure logging."""

    def __init__(
        self,
        kind: RecordKind,
        validator: Optional[PayloadValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
        degrade_list_failures: bool = False,
    ):
        self.kind = kind
        self._validator = validator or PayloadValidator()
        self._activity_logger = activity_logger or ActivityLogger()
        self._degrade_list_failures = degrade_list_failures

    def _not_found(self) -> NotFoundError:
        label = self.kind.label
        return NotFoundError(f"{label[0].upper()}{label[1:]} not found")

    async def _validated(self, operation: str, validate, payload: Any):
        try:
            return validate(payload)
        except ValidationError as e:
            await self._activity_logger.log_validation_failed(self.kind, operation, e.issues)
            raise

    async def _stored(self, operation: str, call, *args, **details):
        try:
            return await call(*args)
        except StorageError as e:
            await self._activity_logger.log_storage_failed(self.kind, operation, e, **details)
            raise

    async def _listed(self, call) -> list:
        """
        Read a whole collection.

        With degrade_list_failures, a read error yields [] (after
        logging) instead of propagating.
        """
        try:
            return await self._stored("list", call)
        except StorageError:
            if self._degrade_list_failures:
                return []
            raise


class ExpenseFlow(_RecordFlow):
    """
    Orchestrates one expense collection (regular or Indian).

    Flow for a create:
    1. Validate → canonical ExpenseCreate (all issues at once)
    2. Store → id and createdAt assigned
    3. Log → record_created
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        kind: RecordKind = RecordKind.EXPENSE,
        **kwargs,
    ):
        super().__init__(kind, **kwargs)
        self._storage = storage

    async def list_records(self, params: Optional[Mapping[str, str]] = None) -> list[ExpenseRecord]:
        """List with optional category/date-range filters and sort."""
        query = await self._validated("list", self._validator.parse_expense_query, params or {})
        records = await self._listed(self._storage.list_expenses)
        return sort_expenses(filter_expenses(records, query), query.sort)

    async def all_records(self) -> list[ExpenseRecord]:
        return await self._listed(self._storage.list_expenses)

    async def get_record(self, record_id: int) -> ExpenseRecord:
        record = await self._stored("get", self._storage.get_expense_by_id, record_id, record_id=record_id)
        if record is None:
            raise self._not_found()
        return record

    async def create_record(self, payload: Any) -> ExpenseRecord:
        canonical = await self._validated("create", self._validator.validate_expense, payload)
        record = await self._stored("create", self._storage.create_expense, canonical)
        await self._activity_logger.log_record_created(self.kind, record.id, str(record.amount))
        return record

    async def delete_record(self, record_id: int) -> None:
        removed = await self._stored("delete", self._storage.delete_expense, record_id, record_id=record_id)
        if not removed:
            raise self._not_found()
        await self._activity_logger.log_record_deleted(self.kind, record_id)

    async def summarize(self, today: Optional[date] = None) -> ExpenseSummary:
        """Headline totals; `today` defaults to the current UTC date."""
        records = await self._stored("summary", self._storage.list_expenses)
        return summarize_expenses(records, today or utc_now().date())


class SalaryFlow(_RecordFlow):
    """Orchestrates the salary collection, including partial updates."""

    def __init__(self, storage: SalaryStorageInterface, **kwargs):
        super().__init__(RecordKind.SALARY, **kwargs)
        self._storage = storage

    async def list_records(self, params: Optional[Mapping[str, str]] = None) -> list[SalaryRecord]:
        query = await self._validated("list", self._validator.parse_salary_query, params or {})
        records = await self._listed(self._storage.list_salaries)
        return sort_salaries(records, query)

    async def all_records(self) -> list[SalaryRecord]:
        return await self._listed(self._storage.list_salaries)

    async def get_record(self, record_id: int) -> SalaryRecord:
        record = await self._stored("get", self._storage.get_salary_by_id, record_id, record_id=record_id)
        if record is None:
            raise self._not_found()
        return record

    async def create_record(self, payload: Any) -> SalaryRecord:
        canonical = await self._validated("create", self._validator.validate_salary, payload)
        record = await self._stored("create", self._storage.create_salary, canonical)
        await self._activity_logger.log_record_created(self.kind, record.id, str(record.amount))
        return record

    async def update_record(self, record_id: int, payload: Any) -> SalaryRecord:
        """
        Apply a partial update.

        The payload is validated before the id is looked up, so an
        invalid body on an unknown id is a 400, not a 404.
        """
        changes = await self._validated("update", self._validator.validate_salary_update, payload)
        record = await self._stored(
            "update", self._storage.update_salary, record_id, changes, record_id=record_id
        )
        if record is None:
            raise self._not_found()
        await self._activity_logger.log_record_updated(
            self.kind, record_id, list(changes.changes())
        )
        return record

    async def delete_record(self, record_id: int) -> None:
        removed = await self._stored("delete", self._storage.delete_salary, record_id, record_id=record_id)
        if not removed:
            raise self._not_found()
        await self._activity_logger.log_record_deleted(self.kind, record_id)


class DashboardFlow:
    """
    Income versus spending across collections.

    Reads the salary collection and one expense collection,
    chosen by region.
    """

    def __init__(
        self,
        expenses: ExpenseFlow,
        indian_expenses: ExpenseFlow,
        salaries: SalaryFlow,
        validator: Optional[PayloadValidator] = None,
    ):
        self._expenses = {Region.STANDARD: expenses, Region.INDIAN: indian_expenses}
        self._salaries = salaries
        self._validator = validator or PayloadValidator()

    async def summarize(self, params: Optional[Mapping[str, str]] = None) -> DashboardSummary:
        month, year, region = self._validator.parse_dashboard_query(params or {})
        expenses = await self._expenses[region].all_records()
        salaries = await self._salaries.all_records()
        return summarize_dashboard(expenses, salaries, month=month, year=year)


@dataclass
class AppComponents:
    """Everything the HTTP layer needs, wired to one backend."""

    expenses: ExpenseFlow
    indian_expenses: ExpenseFlow
    salaries: SalaryFlow
    dashboard: DashboardFlow
    backend: str
    database_client: Optional[DatabaseClient] = None

    def flow_for(self, kind: RecordKind):
        return {
            RecordKind.EXPENSE: self.expenses,
            RecordKind.INDIAN_EXPENSE: self.indian_expenses,
            RecordKind.SALARY: self.salaries,
        }[kind]


def create_app_components(
    backend: Optional[str] = None,
    database_settings: Optional[DatabaseSettings] = None,
    degrade_list_failures: Optional[bool] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "database". Defaults to STORAGE_BACKEND.
        database_settings: Overrides the DATABASE_* settings.
        degrade_list_failures: Overrides APP_DEGRADE_LIST_FAILURES.

    Returns:
        AppComponents with one flow per collection plus the dashboard.

    Raises:
        ConnectionError: If the database backend cannot be initialized
    """
    settings = get_settings()
    backend = backend or settings.storage.backend
    if degrade_list_failures is None:
        degrade_list_failures = settings.app.degrade_list_failures

    database_client = None
    if backend == "database":
        database_client = DatabaseClient(database_settings or settings.database)
        database_client.create_tables()
        expense_storage = DatabaseExpenseStorage(database_client)
        indian_storage = DatabaseExpenseStorage(database_client, row_type=IndianExpenseRow)
        salary_storage = DatabaseSalaryStorage(database_client)
    elif backend == "memory":
        expense_storage = InMemoryExpenseStorage()
        indian_storage = InMemoryExpenseStorage()
        salary_storage = InMemorySalaryStorage()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    validator = PayloadValidator()
    activity_logger = ActivityLogger()
    shared = dict(
        validator=validator,
        activity_logger=activity_logger,
        degrade_list_failures=degrade_list_failures,
    )

    expenses = ExpenseFlow(expense_storage, RecordKind.EXPENSE, **shared)
    indian_expenses = ExpenseFlow(indian_storage, RecordKind.INDIAN_EXPENSE, **shared)
    salaries = SalaryFlow(salary_storage, **shared)

    return AppComponents(
        expenses=expenses,
        indian_expenses=indian_expenses,
        salaries=salaries,
        dashboard=DashboardFlow(expenses, indian_expenses, salaries, validator=validator),
        backend=backend,
        database_client=database_client,
    )
