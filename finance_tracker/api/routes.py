"""
REST resource handlers.

Each handler parses the path id and body, hands them to a record
flow, and shapes the response. No validation or storage logic lives
here. Handlers never branch on the storage backend.

Routes with a fixed segment (/summary) are registered before the
/{record_id} routes of the same resource.
"""

import json
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from finance_tracker.api.errors import guarded, parse_record_id
from finance_tracker.models.records import RecordKind, ValidationIssue
from finance_tracker.orchestrator import AppComponents
from finance_tracker.services.storage import ConnectionError
from finance_tracker.validation import ValidationError


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body.

    JSON numbers with a fraction are read as Decimal so amounts stay
    exact. Malformed JSON is a validation failure, like any bad field.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw, parse_float=Decimal)
    except ValueError as e:
        raise ValidationError([
            ValidationIssue(field="body", issue_type="invalid_format", message="Malformed JSON")
        ]) from e


def build_expense_router(kind: RecordKind) -> APIRouter:
    """Routes for one expense collection: list, summary, get, create, delete."""
    router = APIRouter(prefix=f"/{kind.value}", tags=[kind.plural_label])

    @router.get("")
    @guarded(f"Failed to fetch {kind.plural_label}")
    async def list_expenses(request: Request, components: AppComponents = Depends(get_components)):
        records = await components.flow_for(kind).list_records(request.query_params)
        return [record.to_response() for record in records]

    @router.get("/summary")
    @guarded(f"Failed to summarize {kind.plural_label}")
    async def summarize_expenses(request: Request, components: AppComponents = Depends(get_components)):
        summary = await components.flow_for(kind).summarize()
        return summary.to_response()

    @router.get("/{record_id}")
    @guarded(f"Failed to fetch {kind.label}")
    async def get_expense(
        record_id: str,
        request: Request,
        components: AppComponents = Depends(get_components),
    ):
        record = await components.flow_for(kind).get_record(parse_record_id(record_id))
        return record.to_response()

    @router.post("", status_code=201)
    @guarded(f"Failed to create {kind.label}")
    async def create_expense(request: Request, components: AppComponents = Depends(get_components)):
        payload = await read_json_body(request)
        record = await components.flow_for(kind).create_record(payload)
        return JSONResponse(status_code=201, content=record.to_response())

    @router.delete("/{record_id}", status_code=204)
    @guarded(f"Failed to delete {kind.label}")
    async def delete_expense(
        record_id: str,
        request: Request,
        components: AppComponents = Depends(get_components),
    ):
        await components.flow_for(kind).delete_record(parse_record_id(record_id))
        return Response(status_code=204)

    return router


def build_salary_router() -> APIRouter:
    """Routes for salaries: list, get, create, partial update, delete."""
    router = APIRouter(prefix="/salaries", tags=["salaries"])

    @router.get("")
    @guarded("Failed to fetch salaries")
    async def list_salaries(request: Request, components: AppComponents = Depends(get_components)):
        records = await components.salaries.list_records(request.query_params)
        return [record.to_response() for record in records]

    @router.get("/{record_id}")
    @guarded("Failed to fetch salary")
    async def get_salary(
        record_id: str,
        request: Request,
        components: AppComponents = Depends(get_components),
    ):
        record = await components.salaries.get_record(parse_record_id(record_id))
        return record.to_response()

    @router.post("", status_code=201)
    @guarded("Failed to create salary")
    async def create_salary(request: Request, components: AppComponents = Depends(get_components)):
        payload = await read_json_body(request)
        record = await components.salaries.create_record(payload)
        return JSONResponse(status_code=201, content=record.to_response())

    @router.patch("/{record_id}")
    @guarded("Failed to update salary")
    async def update_salary(
        record_id: str,
        request: Request,
        components: AppComponents = Depends(get_components),
    ):
        salary_id = parse_record_id(record_id)
        payload = await read_json_body(request)
        record = await components.salaries.update_record(salary_id, payload)
        return record.to_response()

    @router.delete("/{record_id}", status_code=204)
    @guarded("Failed to delete salary")
    async def delete_salary(
        record_id: str,
        request: Request,
        components: AppComponents = Depends(get_components),
    ):
        await components.salaries.delete_record(parse_record_id(record_id))
        return Response(status_code=204)

    return router


def build_overview_router() -> APIRouter:
    """Cross-collection dashboard and the health check."""
    router = APIRouter(tags=["overview"])

    @router.get("/dashboard")
    @guarded("Failed to build dashboard")
    async def dashboard(request: Request, components: AppComponents = Depends(get_components)):
        summary = await components.dashboard.summarize(request.query_params)
        return summary.to_response()

    @router.get("/health")
    async def health(request: Request, components: AppComponents = Depends(get_components)):
        if components.database_client is not None:
            try:
                await run_in_threadpool(components.database_client.ping)
            except ConnectionError:
                return JSONResponse(
                    status_code=503,
                    content={"status": "unavailable", "storage": components.backend},
                )
        return {"status": "ok", "storage": components.backend}

    return router


def build_api_router() -> APIRouter:
    """Every resource, mounted under /api."""
    api = APIRouter(prefix="/api")
    api.include_router(build_expense_router(RecordKind.EXPENSE))
    api.include_router(build_expense_router(RecordKind.INDIAN_EXPENSE))
    api.include_router(build_salary_router())
    api.include_router(build_overview_router())
    return api
