"""
Query Execution Engine

DESIGN DECISION: Every view the dashboards and list screens show is
computed DETERMINISTICALLY from the stored records, here, on the
server. Functions in this module:
- never touch storage (callers pass the records in)
- never mutate their input
- sum with Decimal, never float

All calendar arithmetic is done in UTC, the zone records are stored in.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from finance_tracker.models.records import ExpenseRecord, Month, SalaryRecord
from finance_tracker.models.views import (
    CategoryTotal,
    DashboardSummary,
    ExpenseQuery,
    ExpenseSummary,
    SalaryQuery,
    SortOrder,
)


ZERO = Decimal("0.00")


def _total(records: Iterable) -> Decimal:
    return sum((record.amount for record in records), ZERO)


def _in_period(moment_day: date, month: Optional[Month], year: Optional[int]) -> bool:
    if month is not None and moment_day.month != month.number:
        return False
    if year is not None and moment_day.year != year:
        return False
    return True


# =============================================================================
# LISTS
# =============================================================================

def filter_expenses(
    records: Sequence[ExpenseRecord],
    query: ExpenseQuery,
) -> list[ExpenseRecord]:
    """
    Apply the category and inclusive calendar-day range of a query.

    Category matches exactly; a record dated anywhere within
    `end_date` (up to 23:59:59.999) is still in range.
    """
    filtered = list(records)

    if query.category is not None:
        filtered = [r for r in filtered if r.category == query.category]

    if query.start_date is not None:
        filtered = [r for r in filtered if r.date.date() >= query.start_date]
    if query.end_date is not None:
        filtered = [r for r in filtered if r.date.date() <= query.end_date]

    return filtered


def sort_expenses(
    records: Sequence[ExpenseRecord],
    sort: Optional[SortOrder],
) -> list[ExpenseRecord]:
    """Stable sort; None keeps the incoming (store) order."""
    if sort == SortOrder.DATE_DESC:
        return sorted(records, key=lambda r: r.date, reverse=True)
    if sort == SortOrder.DATE_ASC:
        return sorted(records, key=lambda r: r.date)
    if sort == SortOrder.AMOUNT_DESC:
        return sorted(records, key=lambda r: r.amount, reverse=True)
    if sort == SortOrder.AMOUNT_ASC:
        return sorted(records, key=lambda r: r.amount)
    return list(records)


def sort_salaries(
    records: Sequence[SalaryRecord],
    query: SalaryQuery,
) -> list[SalaryRecord]:
    """
    Filter by year, then order the salary list.

    Salaries are always put in pay-period order first (year, then
    month January..December). date-desc reverses that order; the
    amount orders re-sort it by amount, keeping period order for ties.
    With no sort, the store order is kept.
    """
    filtered = list(records)
    if query.year is not None:
        filtered = [r for r in filtered if r.year == query.year]

    if query.sort is None:
        return filtered

    filtered.sort(key=lambda r: (r.year, r.month.number))

    if query.sort == SortOrder.DATE_DESC:
        filtered.reverse()
    elif query.sort == SortOrder.AMOUNT_DESC:
        filtered.sort(key=lambda r: r.amount, reverse=True)
    elif query.sort == SortOrder.AMOUNT_ASC:
        filtered.sort(key=lambda r: r.amount)

    return filtered


# =============================================================================
# SUMMARIES
# =============================================================================

def category_totals(records: Iterable[ExpenseRecord]) -> list[CategoryTotal]:
    """Per-category sums, in the order each category is first seen."""
    totals: "OrderedDict[str, Decimal]" = OrderedDict()
    for record in records:
        totals[record.category] = totals.get(record.category, ZERO) + record.amount
    return [CategoryTotal(category=name, amount=amount) for name, amount in totals.items()]


def summarize_dashboard(
    expenses: Sequence[ExpenseRecord],
    salaries: Sequence[SalaryRecord],
    month: Optional[Month] = None,
    year: Optional[int] = None,
) -> DashboardSummary:
    """
    Income versus spending for a month and/or year.

    Salaries match on their pay period (month/year fields); expenses
    match on the calendar month of their date. Omitted bounds match all.
    """
    period_expenses = [e for e in expenses if _in_period(e.date.date(), month, year)]
    period_salaries = [
        s for s in salaries
        if (month is None or s.month == month) and (year is None or s.year == year)
    ]

    income = _total(period_salaries)
    spent = _total(period_expenses)

    return DashboardSummary(
        month=month,
        year=year,
        total_income=income,
        total_expenses=spent,
        savings=income - spent,
        by_category=category_totals(period_expenses),
    )


def summarize_expenses(
    records: Sequence[ExpenseRecord],
    today: date,
) -> ExpenseSummary:
    """
    Headline figures: overall total, total for the month containing
    `today`, and the highest-spending category.

    Ties for highest keep the category seen first. With no records
    the highest category is "None" with amount 0.
    """
    this_month = [
        r for r in records
        if r.date.year == today.year and r.date.month == today.month
    ]

    highest_category = "None"
    highest_amount = ZERO
    for entry in category_totals(records):
        if entry.amount > highest_amount:
            highest_category = entry.category
            highest_amount = entry.amount

    return ExpenseSummary(
        total=_total(records),
        this_month=_total(this_month),
        highest_category=highest_category,
        highest_amount=highest_amount,
        count=len(records),
    )
