"""
HTTP error mapping.

Domain exceptions are raised by the layer that detects them; this
module turns them into JSON responses:

    ValidationError          -> 400 {message, errors}
    MalformedIdentifierError -> 400 {message}
    NotFoundError            -> 404 {message}
    InternalError            -> 500 {message}   (generic, per operation)
    StorageError             -> 500 {message}   (outside a guarded route)
"""

import functools
import re

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from finance_tracker.activity import ActivityLogger
from finance_tracker.services.storage import NotFoundError, StorageError
from finance_tracker.validation import ValidationError


# Largest id the 64-bit primary key columns can hold.
MAX_RECORD_ID = 2 ** 63 - 1

_ID_PATTERN = re.compile(r"^[0-9]+$")

_activity_logger = ActivityLogger("finance_tracker.api")


class MalformedIdentifierError(Exception):
    """Path id is not a (positive, in-range) integer."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__("Invalid ID format")


class InternalError(Exception):
    """
    Unexpected failure inside a handler.

    The message is the route's generic one; the cause is chained
    and logged, never sent to the client.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def parse_record_id(raw: str) -> int:
    """Parse a path id, raising MalformedIdentifierError for anything but digits."""
    text = raw.strip()
    if not _ID_PATTERN.match(text):
        raise MalformedIdentifierError(raw)
    record_id = int(text)
    if record_id > MAX_RECORD_ID:
        raise MalformedIdentifierError(raw)
    return record_id


_PASSTHROUGH = (ValidationError, NotFoundError, MalformedIdentifierError, InternalError)


def guarded(message: str):
    """
    Route decorator: unexpected exceptions become InternalError(message).

    Expected domain errors pass through to their handlers untouched.
    The wrapped endpoint must accept `request` as a keyword argument.
    """
    def decorator(endpoint):
        @functools.wraps(endpoint)
        async def wrapper(*args, **kwargs):
            try:
                return await endpoint(*args, **kwargs)
            except _PASSTHROUGH:
                raise
            except Exception as e:
                request = kwargs.get("request")
                await _activity_logger.log_request_failed(
                    request.method if request is not None else "",
                    request.url.path if request is not None else "",
                    e,
                )
                raise InternalError(message) from e
        return wrapper
    return decorator


# --- Exception handlers ---

async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=exc.to_response())


async def _malformed_identifier(request: Request, exc: MalformedIdentifierError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": str(exc)})


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": str(exc)})


async def _internal_error(request: Request, exc: InternalError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"message": exc.message})


async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    await _activity_logger.log_request_failed(request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(MalformedIdentifierError, _malformed_identifier)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(InternalError, _internal_error)
    app.add_exception_handler(StorageError, _storage_error)
