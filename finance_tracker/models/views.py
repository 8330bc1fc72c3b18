"""
View Models

Filters and summaries that the dashboards and list screens display.
They are computed deterministically from stored records by the
query executor; nothing here is persisted.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from finance_tracker.models.records import Month, format_amount


class SortOrder(str, Enum):
    """Orderings offered by the list screens."""
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"


class Region(str, Enum):
    """Which expense collection a dashboard reads."""
    STANDARD = "standard"
    INDIAN = "indian"


class ExpenseQuery(BaseModel):
    """
    Filters for an expense list.

    A None category means "all". Date bounds are inclusive calendar
    days. A None sort keeps the store order (date ascending).
    """

    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    sort: Optional[SortOrder] = None

    @model_validator(mode='after')
    def validate_range(self) -> 'ExpenseQuery':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class SalaryQuery(BaseModel):
    """Filters for the salary list."""

    year: Optional[int] = Field(default=None, ge=1, le=9999)
    sort: Optional[SortOrder] = None


class _Summary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CategoryTotal(_Summary):
    """Sum of amounts for one category."""

    category: str
    amount: Decimal

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)


class DashboardSummary(_Summary):
    """
    Income versus spending for an optional month/year.

    Savings is income minus expenses and may be negative.
    """

    month: Optional[Month] = None
    year: Optional[int] = None
    total_income: Decimal = Field(..., alias="totalIncome")
    total_expenses: Decimal = Field(..., alias="totalExpenses")
    savings: Decimal
    by_category: list[CategoryTotal] = Field(default_factory=list, alias="byCategory")

    @field_serializer("total_income", "total_expenses", "savings")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)


class ExpenseSummary(_Summary):
    """Headline figures for one expense collection."""

    total: Decimal
    this_month: Decimal = Field(..., alias="thisMonth")
    highest_category: str = Field(default="None", alias="highestCategory")
    highest_amount: Decimal = Field(default=Decimal("0"), alias="highestAmount")
    count: int = Field(default=0, ge=0)

    @field_serializer("total", "this_month", "highest_amount")
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)
