"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All records flowing through the system must conform to these schemas.
"""

from finance_tracker.models.records import (
    AMOUNT_QUANTUM,
    MAX_AMOUNT,
    ExpenseCreate,
    ExpenseRecord,
    Month,
    RecordKind,
    SalaryCreate,
    SalaryRecord,
    SalaryUpdate,
    ValidationIssue,
    ensure_utc,
    format_amount,
    format_timestamp,
    utc_now,
)
from finance_tracker.models.views import (
    CategoryTotal,
    DashboardSummary,
    ExpenseQuery,
    ExpenseSummary,
    Region,
    SalaryQuery,
    SortOrder,
)

__all__ = [
    # Record models
    "AMOUNT_QUANTUM",
    "MAX_AMOUNT",
    "ExpenseCreate",
    "ExpenseRecord",
    "Month",
    "RecordKind",
    "SalaryCreate",
    "SalaryRecord",
    "SalaryUpdate",
    "ValidationIssue",
    "ensure_utc",
    "format_amount",
    "format_timestamp",
    "utc_now",
    # View models
    "CategoryTotal",
    "DashboardSummary",
    "ExpenseQuery",
    "ExpenseSummary",
    "Region",
    "SalaryQuery",
    "SortOrder",
]
