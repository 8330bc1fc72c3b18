"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run fully in memory for tests and demos
2. Swap to a relational database in production
3. Keep validation and HTTP handling decoupled from persistence

The interface is intentionally narrow - single-row CRUD by primary key.
Payloads arriving here have already been validated and normalized.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.records import (
    ExpenseCreate,
    ExpenseRecord,
    SalaryCreate,
    SalaryRecord,
    SalaryUpdate,
)


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for one expense collection.

    The regular and the Indian expense collections are two
    independent instances of the same implementation.
    """

    @abstractmethod
    async def list_expenses(self) -> list[ExpenseRecord]:
        """
        List every expense in the collection.

        Returns:
            Records ordered by date ascending, ties by id ascending

        Raises:
            StorageError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: int) -> Optional[ExpenseRecord]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_expense(self, payload: ExpenseCreate) -> ExpenseRecord:
        """
        Insert a new expense.

        Assigns the next id and createdAt. A payload without a date
        gets the creation time.

        Returns:
            The fully materialized record

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a record was removed, False if the id was unknown
        """
        pass


class SalaryStorageInterface(ABC):
    """Abstract interface for the salary collection."""

    @abstractmethod
    async def list_salaries(self) -> list[SalaryRecord]:
        """
        List every salary entry.

        Returns:
            Records ordered by date ascending, ties by id ascending

        Raises:
            StorageError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    async def get_salary_by_id(self, salary_id: int) -> Optional[SalaryRecord]:
        """Retrieve a salary entry by ID, or None."""
        pass

    @abstractmethod
    async def create_salary(self, payload: SalaryCreate) -> SalaryRecord:
        """
        Insert a new salary entry.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_salary(
        self,
        salary_id: int,
        changes: SalaryUpdate,
    ) -> Optional[SalaryRecord]:
        """
        Merge the provided fields into an existing salary entry.

        Fields the caller did not set keep their stored value.
        id and createdAt never change.

        Returns:
            The updated record, or None if the id is unknown
        """
        pass

    @abstractmethod
    async def delete_salary(self, salary_id: int) -> bool:
        """
        Delete a salary entry by ID.

        Returns:
            True if a record was removed, False if the id was unknown
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
