"""
Payload Validation & Normalization

DESIGN DECISION: Validation happens in two distinct steps:

STEP 1 - COERCION:
- Accept loose client input (numbers as strings, dates as strings
  or epoch milliseconds, month names in any casing)
- Convert each field to its canonical type
- Record a ValidationIssue for every field that cannot be converted

STEP 2 - CANONICAL PAYLOAD:
- Build the frozen pydantic payload the store accepts
- Business-rule failures (e.g. amount too small) were already
  recorded in step 1, next to the coercion failures

All issues are aggregated: a payload with three bad fields produces
one ValidationError listing all three. Nothing reaches storage unless
the whole payload is valid. Unknown fields are ignored.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.models.records import (
    AMOUNT_QUANTUM,
    MAX_AMOUNT,
    ExpenseCreate,
    Month,
    SalaryCreate,
    SalaryUpdate,
    ValidationIssue,
    ensure_utc,
    format_amount,
    utc_now,
)
from finance_tracker.models.views import ExpenseQuery, Region, SalaryQuery, SortOrder


MIN_EXPENSE_AMOUNT = Decimal("0.01")

_MISSING = object()


class ValidationError(Exception):
    """
    Client input failed schema or constraint checks.

    Carries every failing field, not just the first one.
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Combined human-readable description of all issues."""
        return "Validation error: " + "; ".join(issue.describe() for issue in self.issues)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    def to_response(self) -> dict:
        return {
            "message": self.message,
            "errors": [issue.model_dump(by_alias=True) for issue in self.issues],
        }


def _issue(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message)


def _build(model: Callable, issues: list[ValidationIssue], **values):
    """
    Construct a canonical payload, or raise with everything collected.

    Pydantic errors at this point mean a constraint the coercion step
    did not check; they are folded into the same ValidationError.
    """
    if issues:
        raise ValidationError(issues)
    try:
        return model(**values)
    except PydanticValidationError as e:
        raise ValidationError([
            _issue(
                ".".join(str(part) for part in error["loc"]) or "body",
                "invalid_value",
                error["msg"],
            )
            for error in e.errors()
        ]) from e


class PayloadValidator:
    """
    Normalizes create/update payloads and list query parameters.

    The clock is injectable so tests can pin "now".
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    # -------------------------------------------------------------------------
    # Field coercion
    # -------------------------------------------------------------------------

    def _require_object(self, payload: Any) -> Mapping[str, Any]:
        if not isinstance(payload, Mapping):
            raise ValidationError([
                _issue("body", "invalid_type", "Expected a JSON object")
            ])
        return payload

    def _coerce_amount(
        self,
        value: Any,
        issues: list[ValidationIssue],
        minimum: Decimal,
        minimum_message: str,
        field: str = "amount",
    ) -> Optional[Decimal]:
        """
        Accept a number or numeric string; return a 2-place Decimal.

        Floats go through str() first so 42.5 becomes Decimal('42.5'),
        not the binary approximation.
        """
        if value is _MISSING or value is None:
            issues.append(_issue(field, "missing", "Required"))
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
            issues.append(_issue(field, "invalid_type", "Expected number or numeric string"))
            return None

        text = value.strip() if isinstance(value, str) else str(value)
        if not text:
            issues.append(_issue(field, "missing", "Required"))
            return None

        try:
            amount = Decimal(text)
        except InvalidOperation:
            issues.append(_issue(field, "invalid_format", f"Amount must be a number, got {text!r}"))
            return None

        if not amount.is_finite():
            issues.append(_issue(field, "invalid_value", "Amount must be a finite number"))
            return None
        if amount < minimum:
            issues.append(_issue(field, "invalid_value", minimum_message))
            return None
        if amount > MAX_AMOUNT:
            issues.append(_issue(
                field,
                "invalid_value",
                f"Amount must not exceed {format_amount(MAX_AMOUNT)}",
            ))
            return None
        if amount != amount.quantize(AMOUNT_QUANTUM):
            issues.append(_issue(field, "invalid_value", "Amount must have at most 2 decimal places"))
            return None

        return amount.quantize(AMOUNT_QUANTUM)

    def _coerce_timestamp(
        self,
        value: Any,
        issues: list[ValidationIssue],
        field: str = "date",
    ) -> Optional[datetime]:
        """
        Accept an ISO-8601 string, a datetime/date, or epoch milliseconds.

        Milliseconds may arrive as Decimal when the body had a fraction.

        Naive values are taken as UTC. Returns an aware UTC datetime.
        """
        if isinstance(value, datetime):
            return ensure_utc(value)
        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=timezone.utc)
        if isinstance(value, bool):
            issues.append(_issue(field, "invalid_type", "Expected date string or timestamp"))
            return None
        if isinstance(value, (int, float, Decimal)):
            try:
                return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                issues.append(_issue(field, "invalid_value", "Timestamp is out of range"))
                return None
        if isinstance(value, str):
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            try:
                return ensure_utc(datetime.fromisoformat(text))
            except ValueError:
                issues.append(_issue(field, "invalid_format", f"Invalid date: {value!r}"))
                return None

        issues.append(_issue(field, "invalid_type", "Expected date string or timestamp"))
        return None

    def _coerce_text(
        self,
        value: Any,
        field: str,
        issues: list[ValidationIssue],
    ) -> Optional[str]:
        """Optional free text. Absent or null -> None; '' is kept."""
        if value is _MISSING or value is None:
            return None
        if not isinstance(value, str):
            issues.append(_issue(field, "invalid_type", "Expected string"))
            return None
        return value

    def _coerce_category(self, value: Any, issues: list[ValidationIssue]) -> Optional[str]:
        """Required, non-blank, stored verbatim."""
        if value is _MISSING or value is None:
            issues.append(_issue("category", "missing", "Required"))
            return None
        if not isinstance(value, str):
            issues.append(_issue("category", "invalid_type", "Expected string"))
            return None
        if not value.strip():
            issues.append(_issue("category", "invalid_value", "Category cannot be empty"))
            return None
        return value

    def _coerce_month(self, value: Any, issues: list[ValidationIssue]) -> Optional[Month]:
        if value is _MISSING or value is None:
            issues.append(_issue("month", "missing", "Required"))
            return None
        if not isinstance(value, str):
            issues.append(_issue("month", "invalid_type", "Expected string"))
            return None
        month = Month.from_name(value)
        if month is None:
            issues.append(_issue(
                "month",
                "invalid_value",
                f"Month must be an English month name (January to December), got {value!r}",
            ))
        return month

    def _coerce_year(self, value: Any, issues: list[ValidationIssue]) -> Optional[int]:
        """Integer or integer string within 1..9999."""
        if value is _MISSING or value is None:
            issues.append(_issue("year", "missing", "Required"))
            return None

        year = None
        if isinstance(value, bool):
            year = None
        elif isinstance(value, int):
            year = value
        elif isinstance(value, float) and value.is_integer():
            year = int(value)
        elif isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
            year = int(value)
        elif isinstance(value, str) and value.strip().isascii():
            try:
                year = int(value.strip())
            except ValueError:
                year = None

        if year is None:
            issues.append(_issue("year", "invalid_type", "Expected integer"))
            return None
        if not 1 <= year <= 9999:
            issues.append(_issue("year", "invalid_value", "Year must be between 1 and 9999"))
            return None
        return year

    # -------------------------------------------------------------------------
    # Create / update payloads
    # -------------------------------------------------------------------------

    def validate_expense(self, payload: Any) -> ExpenseCreate:
        """
        Validate a new expense (regular or Indian).

        Required: category, amount (>= 0.01). Optional: description, date.
        A missing date becomes "now".
        """
        data = self._require_object(payload)
        issues: list[ValidationIssue] = []

        category = self._coerce_category(data.get("category", _MISSING), issues)
        description = self._coerce_text(data.get("description", _MISSING), "description", issues)
        amount = self._coerce_amount(
            data.get("amount", _MISSING),
            issues,
            minimum=MIN_EXPENSE_AMOUNT,
            minimum_message="Amount must be at least 0.01",
        )
        raw_date = data.get("date")
        when = self._coerce_timestamp(raw_date, issues) if raw_date is not None else self._clock()

        return _build(
            ExpenseCreate,
            issues,
            category=category,
            description=description,
            amount=amount,
            date=when,
        )

    def validate_salary(self, payload: Any) -> SalaryCreate:
        """
        Validate a new salary entry.

        Required: month, amount (> 0). Optional: year (defaults to the
        year of the entry's date), notes, date (defaults to "now").
        """
        data = self._require_object(payload)
        issues: list[ValidationIssue] = []

        amount = self._coerce_amount(
            data.get("amount", _MISSING),
            issues,
            minimum=AMOUNT_QUANTUM,
            minimum_message="Amount must be greater than 0",
        )
        month = self._coerce_month(data.get("month", _MISSING), issues)
        notes = self._coerce_text(data.get("notes", _MISSING), "notes", issues)
        raw_date = data.get("date")
        when = self._coerce_timestamp(raw_date, issues) if raw_date is not None else self._clock()

        raw_year = data.get("year")
        if raw_year is not None:
            year = self._coerce_year(raw_year, issues)
        else:
            year = when.year if when is not None else None

        return _build(
            SalaryCreate,
            issues,
            amount=amount,
            month=month,
            year=year,
            notes=notes,
            date=when,
        )

    def validate_salary_update(self, payload: Any) -> SalaryUpdate:
        """
        Validate a partial salary update.

        Every field is optional, but a field that is present must pass
        the same checks as on create. notes may be set to null.
        """
        data = self._require_object(payload)
        issues: list[ValidationIssue] = []
        changes: dict[str, Any] = {}

        if "amount" in data:
            changes["amount"] = self._coerce_amount(
                data["amount"],
                issues,
                minimum=AMOUNT_QUANTUM,
                minimum_message="Amount must be greater than 0",
            )
        if "month" in data:
            changes["month"] = self._coerce_month(data["month"], issues)
        if "year" in data:
            changes["year"] = self._coerce_year(data["year"], issues)
        if "notes" in data:
            changes["notes"] = self._coerce_text(data["notes"], "notes", issues)

        return _build(SalaryUpdate, issues, **changes)

    # -------------------------------------------------------------------------
    # List / summary query parameters
    # -------------------------------------------------------------------------

    def _coerce_sort(self, value: Optional[str], issues: list[ValidationIssue]) -> Optional[SortOrder]:
        if value is None or not value.strip():
            return None
        try:
            return SortOrder(value.strip())
        except ValueError:
            allowed = ", ".join(order.value for order in SortOrder)
            issues.append(_issue("sort", "invalid_value", f"Sort must be one of: {allowed}"))
            return None

    def _coerce_day(
        self,
        value: Optional[str],
        field: str,
        issues: list[ValidationIssue],
    ) -> Optional[date]:
        if value is None or not value.strip():
            return None
        moment = self._coerce_timestamp(value, issues, field=field)
        return moment.date() if moment is not None else None

    def parse_expense_query(self, params: Mapping[str, str]) -> ExpenseQuery:
        """
        Query parameters of an expense list: category, startDate,
        endDate, sort. category "all" means no filter.
        """
        issues: list[ValidationIssue] = []

        category = params.get("category")
        if category is not None and category.strip().lower() in ("", "all"):
            category = None

        return _build(
            ExpenseQuery,
            issues,
            category=category,
            start_date=self._coerce_day(params.get("startDate"), "startDate", issues),
            end_date=self._coerce_day(params.get("endDate"), "endDate", issues),
            sort=self._coerce_sort(params.get("sort"), issues),
        )

    def parse_salary_query(self, params: Mapping[str, str]) -> SalaryQuery:
        """Query parameters of the salary list: year, sort."""
        issues: list[ValidationIssue] = []

        year = None
        raw_year = params.get("year")
        if raw_year is not None and raw_year.strip().lower() not in ("", "all"):
            year = self._coerce_year(raw_year, issues)

        return _build(
            SalaryQuery,
            issues,
            year=year,
            sort=self._coerce_sort(params.get("sort"), issues),
        )

    def parse_dashboard_query(
        self,
        params: Mapping[str, str],
    ) -> tuple[Optional[Month], Optional[int], Region]:
        """Query parameters of the dashboard: month, year, region."""
        issues: list[ValidationIssue] = []

        month = None
        raw_month = params.get("month")
        if raw_month is not None and raw_month.strip().lower() not in ("", "all"):
            month = self._coerce_month(raw_month, issues)

        year = None
        raw_year = params.get("year")
        if raw_year is not None and raw_year.strip().lower() not in ("", "all"):
            year = self._coerce_year(raw_year, issues)

        region = Region.STANDARD
        raw_region = params.get("region")
        if raw_region:
            try:
                region = Region(raw_region.strip().lower())
            except ValueError:
                issues.append(_issue("region", "invalid_value", "Region must be 'standard' or 'indian'"))

        if issues:
            raise ValidationError(issues)
        return month, year, region
