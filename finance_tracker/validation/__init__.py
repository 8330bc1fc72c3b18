"""Payload validation package."""

from finance_tracker.validation.validator import (
    MIN_EXPENSE_AMOUNT,
    PayloadValidator,
    ValidationError,
)

__all__ = [
    "MIN_EXPENSE_AMOUNT",
    "PayloadValidator",
    "ValidationError",
]
