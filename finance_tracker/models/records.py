"""
Core Data Models for Finance Tracker

These models define the strict schemas for all records flowing
through the system. They are designed to:
1. Enforce type safety at runtime
2. Keep amounts exact (Decimal quantized to cents, never float)
3. Serialize to the JSON shape clients expect (camelCase, ISO-8601 'Z')

DESIGN DECISION: Loose client input is NOT accepted here.
Coercion of strings/numbers/timestamps happens in the validation
package, which then builds these canonical payloads. Records are
frozen: a stored record is replaced, never mutated in place.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)


# Matches the NUMERIC(10, 2) column of the relational store.
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Month(str, Enum):
    """Canonical English month names, in calendar order."""
    JANUARY = "January"
    FEBRUARY = "February"
    MARCH = "March"
    APRIL = "April"
    MAY = "May"
    JUNE = "June"
    JULY = "July"
    AUGUST = "August"
    SEPTEMBER = "September"
    OCTOBER = "October"
    NOVEMBER = "November"
    DECEMBER = "December"

    @property
    def number(self) -> int:
        """Calendar position, 1 for January."""
        return list(Month).index(self) + 1

    @classmethod
    def from_name(cls, name: str) -> Optional["Month"]:
        """Case-insensitive lookup; None when the name is not a month."""
        wanted = name.strip().lower()
        for month in cls:
            if month.value.lower() == wanted:
                return month
        return None


class RecordKind(str, Enum):
    """
    The three record collections.

    Values double as the REST resource names.
    """
    EXPENSE = "expenses"
    INDIAN_EXPENSE = "indian-expenses"
    SALARY = "salaries"

    @property
    def label(self) -> str:
        """Singular human-readable name used in messages."""
        return {
            RecordKind.EXPENSE: "expense",
            RecordKind.INDIAN_EXPENSE: "Indian expense",
            RecordKind.SALARY: "salary",
        }[self]

    @property
    def plural_label(self) -> str:
        return {
            RecordKind.EXPENSE: "expenses",
            RecordKind.INDIAN_EXPENSE: "Indian expenses",
            RecordKind.SALARY: "salaries",
        }[self]


# =============================================================================
# HELPERS
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-03-01T00:00:00.000Z"""
    # year is always four digits, e.g. 0099-06-01T00:00:00.000Z
    value = ensure_utc(value)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_amount(value: Decimal) -> str:
    """Fixed two-place decimal string, e.g. Decimal('42.5') -> '42.50'."""
    return f"{value.quantize(AMOUNT_QUANTUM):f}"


# =============================================================================
# CANONICAL PAYLOADS - output of the validation layer
# =============================================================================

class ExpenseCreate(BaseModel):
    """
    Canonical payload for a new expense (either expense collection).

    `date` may be None; the store then uses the creation time.
    """
    model_config = ConfigDict(frozen=True)

    category: str = Field(
        ...,
        min_length=1,
        description="Free-form category, stored verbatim"
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional description; empty string is preserved"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        decimal_places=2,
        description="Exact amount, two fractional digits"
    )
    date: Optional[datetime] = None


class SalaryCreate(BaseModel):
    """Canonical payload for a new salary entry."""
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        decimal_places=2,
    )
    month: Month
    year: int = Field(..., ge=1, le=9999)
    notes: Optional[str] = None
    date: Optional[datetime] = None


class SalaryUpdate(BaseModel):
    """
    Canonical partial payload for a salary update.

    Only the fields explicitly set are applied; see `changes()`.
    """
    model_config = ConfigDict(frozen=True)

    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        le=MAX_AMOUNT,
        decimal_places=2,
    )
    month: Optional[Month] = None
    year: Optional[int] = Field(default=None, ge=1, le=9999)
    notes: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        """Fields the caller provided, including an explicit notes=None."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# =============================================================================
# STORED RECORDS
# =============================================================================

class _Record(BaseModel):
    """Shared serialization for stored records."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_serializer("amount", check_fields=False)
    def serialize_amount(self, value: Decimal) -> str:
        return format_amount(value)

    @field_serializer("date", "created_at", check_fields=False)
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_response(self) -> dict[str, Any]:
        """JSON-ready dict in the client's wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class ExpenseRecord(_Record):
    """An expense row, as stored in either expense collection."""

    id: int
    category: str
    description: Optional[str] = None
    amount: Decimal
    date: datetime
    created_at: datetime = Field(..., alias="createdAt")


class SalaryRecord(_Record):
    """A salary row."""

    id: int
    amount: Decimal
    month: Month
    year: int
    notes: Optional[str] = None
    date: datetime
    created_at: datetime = Field(..., alias="createdAt")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single failing field in a request payload."""
    model_config = ConfigDict(populate_by_name=True)

    field: str = Field(
        ...,
        description="Field with the issue ('body' for the payload itself)"
    )
    issue_type: str = Field(
        ...,
        alias="issueType",
        description="Type of issue (e.g., 'missing', 'invalid_type', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )

    def describe(self) -> str:
        return f'{self.message} at "{self.field}"'
