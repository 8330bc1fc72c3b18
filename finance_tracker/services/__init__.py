"""Services package."""

from finance_tracker.services.storage import (
    ConnectionError,
    DatabaseClient,
    DatabaseExpenseStorage,
    DatabaseSalaryStorage,
    ExpenseStorageInterface,
    InMemoryExpenseStorage,
    InMemorySalaryStorage,
    NotFoundError,
    SalaryStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "DatabaseClient",
    "DatabaseExpenseStorage",
    "DatabaseSalaryStorage",
    "ExpenseStorageInterface",
    "InMemoryExpenseStorage",
    "InMemorySalaryStorage",
    "NotFoundError",
    "SalaryStorageInterface",
    "StorageError",
]
