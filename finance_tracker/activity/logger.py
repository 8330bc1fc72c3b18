"""
Activity Logger

DESIGN DECISION: Every change to a record collection, and every
rejected or failed request, is logged as one structured event.
This provides:
1. Traceability of what was created, changed and removed
2. Debugging capability for storage failures

The activity logger:
- Writes structured events through structlog (JSON lines by default)
- Never stores events; there is no audit table
"""

import logging
import sys
from typing import Any, Optional

import structlog

from finance_tracker.config import AppSettings
from finance_tracker.models.records import RecordKind, ValidationIssue


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Configure stdlib logging and structlog once per process.

    JSON lines for deployments, a coloured console renderer when
    APP_LOG_JSON=false.
    """
    settings = settings or AppSettings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )
    logging.getLogger().setLevel(getattr(logging, settings.log_level))

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class ActivityLogger:
    """
    Central activity logging service.

    One instance is shared by all record flows; each event carries the
    collection name so a single log stream covers all three.
    """

    def __init__(self, name: str = "finance_tracker.activity"):
        self._logger = structlog.get_logger(name)

    async def log_record_created(self, kind: RecordKind, record_id: int, amount: str) -> None:
        self._logger.info(
            "record_created",
            collection=kind.value,
            record_id=record_id,
            amount=amount,
        )

    async def log_record_updated(
        self,
        kind: RecordKind,
        record_id: int,
        fields: list[str],
    ) -> None:
        """Log a partial update; `fields` are the names that were applied."""
        self._logger.info(
            "record_updated",
            collection=kind.value,
            record_id=record_id,
            fields=sorted(fields),
        )

    async def log_record_deleted(self, kind: RecordKind, record_id: int) -> None:
        self._logger.info(
            "record_deleted",
            collection=kind.value,
            record_id=record_id,
        )

    async def log_validation_failed(
        self,
        kind: RecordKind,
        operation: str,
        issues: list[ValidationIssue],
    ) -> None:
        """Log a rejected payload or query with every failing field."""
        self._logger.warning(
            "validation_failed",
            collection=kind.value,
            operation=operation,
            issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in issues
            ],
        )

    async def log_storage_failed(
        self,
        kind: RecordKind,
        operation: str,
        error: Exception,
        **details: Any,
    ) -> None:
        self._logger.error(
            "storage_failed",
            collection=kind.value,
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **details,
        )

    async def log_request_failed(
        self,
        method: str,
        path: str,
        error: Exception,
    ) -> None:
        """Log an unexpected failure that escaped the record flows."""
        self._logger.error(
            "request_failed",
            method=method,
            path=path,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error,
        )
