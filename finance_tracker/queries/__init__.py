"""Query execution package."""

from finance_tracker.queries.executor import (
    category_totals,
    filter_expenses,
    sort_expenses,
    sort_salaries,
    summarize_dashboard,
    summarize_expenses,
)

__all__ = [
    "category_totals",
    "filter_expenses",
    "sort_expenses",
    "sort_salaries",
    "summarize_dashboard",
    "summarize_expenses",
]
