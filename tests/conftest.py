"""Shared fixtures: settings isolation, stores for both backends, HTTP client."""

import pytest
from fastapi.testclient import TestClient

from finance_tracker.api import create_app
from finance_tracker.config import DatabaseSettings, get_settings
from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.storage import (
    DatabaseClient,
    DatabaseExpenseStorage,
    DatabaseSalaryStorage,
    InMemoryExpenseStorage,
    InMemorySalaryStorage,
    IndianExpenseRow,
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Ignore the developer's environment and reset the settings cache."""
    for name in (
        "STORAGE_BACKEND",
        "DATABASE_URL",
        "DATABASE_ECHO",
        "APP_LOG_LEVEL",
        "APP_LOG_JSON",
        "APP_DEGRADE_LIST_FAILURES",
        "SERVER_HOST",
        "SERVER_PORT",
        "SERVER_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def database_settings(tmp_path):
    return DatabaseSettings(url=f"sqlite:///{tmp_path / 'finance.db'}")


@pytest.fixture
def database_client(database_settings):
    client = DatabaseClient(database_settings)
    client.create_tables()
    yield client
    client.dispose()


@pytest.fixture(params=["memory", "database"])
def expense_storage(request, database_client):
    if request.param == "memory":
        return InMemoryExpenseStorage()
    return DatabaseExpenseStorage(database_client)


@pytest.fixture(params=["memory", "database"])
def indian_expense_storage(request, database_client):
    if request.param == "memory":
        return InMemoryExpenseStorage()
    return DatabaseExpenseStorage(database_client, row_type=IndianExpenseRow)


@pytest.fixture(params=["memory", "database"])
def salary_storage(request, database_client):
    if request.param == "memory":
        return InMemorySalaryStorage()
    return DatabaseSalaryStorage(database_client)


@pytest.fixture(params=["memory", "database"])
def client(request, database_settings):
    """HTTP client against a fresh app, once per backend."""
    components = create_app_components(
        backend=request.param,
        database_settings=database_settings,
    )
    with TestClient(create_app(components)) as test_client:
        yield test_client
    if components.database_client is not None:
        components.database_client.dispose()
