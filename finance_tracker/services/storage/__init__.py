"""
Storage Services Package

Provides abstract interfaces and concrete implementations for record storage:
an in-memory map, and a relational store through SQLAlchemy.
"""

from finance_tracker.services.storage.interface import (
    ConnectionError,
    ExpenseStorageInterface,
    NotFoundError,
    SalaryStorageInterface,
    StorageError,
)
from finance_tracker.services.storage.memory import (
    InMemoryExpenseStorage,
    InMemorySalaryStorage,
)
from finance_tracker.services.storage.database import (
    DatabaseClient,
    DatabaseExpenseStorage,
    DatabaseSalaryStorage,
    ExpenseRow,
    IndianExpenseRow,
    SalaryRow,
)

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    "SalaryStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryExpenseStorage",
    "InMemorySalaryStorage",
    # SQLAlchemy implementation
    "DatabaseClient",
    "DatabaseExpenseStorage",
    "DatabaseSalaryStorage",
    "ExpenseRow",
    "IndianExpenseRow",
    "SalaryRow",
]
