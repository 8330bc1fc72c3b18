"""HTTP API package."""

from finance_tracker.api.app import create_app
from finance_tracker.api.errors import (
    InternalError,
    MalformedIdentifierError,
    parse_record_id,
)

__all__ = [
    "InternalError",
    "MalformedIdentifierError",
    "create_app",
    "parse_record_id",
]
