"""Tests for the REST API, run against every backend."""

import pytest
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from finance_tracker.api import create_app
from finance_tracker.models import RecordKind, utc_now
from finance_tracker.orchestrator import (
    AppComponents,
    DashboardFlow,
    ExpenseFlow,
    SalaryFlow,
)
from finance_tracker.services.storage import (
    InMemoryExpenseStorage,
    InMemorySalaryStorage,
    StorageError,
)


FOOD = {"category": "Food", "amount": "42.50", "date": "2024-03-01T00:00:00.000Z"}
MARCH_SALARY = {"amount": 3000, "month": "March", "year": 2024}


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


class TestExpenseEndpoints:
    """Tests for /api/expenses and /api/indian-expenses."""

    def test_create_expense(self, client):
        """Test a valid expense is created with the canonical shape."""
        response = client.post("/api/expenses", json=FOOD)
        assert response.status_code == 201
        body = response.json()
        assert body["category"] == "Food"
        assert body["amount"] == "42.50"
        assert body["date"] == "2024-03-01T00:00:00.000Z"
        assert body["description"] is None
        assert set(body) == {"id", "category", "description", "amount", "date", "createdAt"}

    def test_created_at_not_before_request(self, client):
        """Test createdAt is assigned at or after the request."""
        now = utc_now()
        before = now.replace(microsecond=now.microsecond // 1000 * 1000)
        body = client.post("/api/expenses", json=FOOD).json()
        assert parse_timestamp(body["createdAt"]) >= before

    def test_ids_increase(self, client):
        """Test every create gets a larger id than the last."""
        ids = [client.post("/api/expenses", json=FOOD).json()["id"] for _ in range(3)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_create_then_fetch(self, client):
        """Test fetching a created record returns the same record."""
        created = client.post("/api/expenses", json={**FOOD, "description": "lunch"}).json()
        response = client.get(f"/api/expenses/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.parametrize("amount,status", [("-5", 400), ("0", 400), ("0.01", 201)])
    def test_amount_boundaries(self, client, amount, status):
        """Test the minimum expense amount."""
        response = client.post("/api/expenses", json={"category": "Food", "amount": amount})
        assert response.status_code == status

    def test_validation_error_body(self, client):
        """Test 400 responses list every failing field."""
        response = client.post("/api/expenses", json={"amount": "abc"})
        assert response.status_code == 400
        body = response.json()
        assert body["message"].startswith("Validation error: ")
        assert {e["field"] for e in body["errors"]} == {"category", "amount"}
        assert all(set(e) == {"field", "issueType", "message"} for e in body["errors"])

    def test_malformed_json(self, client):
        """Test an unparseable body is a 400."""
        response = client.post(
            "/api/expenses",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "body"

    def test_non_object_body(self, client):
        """Test a JSON array body is a 400."""
        response = client.post("/api/expenses", json=[FOOD])
        assert response.status_code == 400

    def test_exact_decimal_json_number(self, client):
        """Test fractional JSON numbers are kept exact."""
        response = client.post("/api/expenses", json={"category": "Food", "amount": 0.1})
        assert response.status_code == 201
        assert response.json()["amount"] == "0.10"

    def test_fractional_epoch_date(self, client):
        """Test a millisecond timestamp written with a fraction is accepted."""
        response = client.post("/api/expenses", json={**FOOD, "date": 1709251200000.0})
        assert response.status_code == 201
        assert response.json()["date"] == "2024-03-01T00:00:00.000Z"

    def test_early_year_date_round_trips(self, client):
        """Test a returned date can be posted back unchanged."""
        created = client.post("/api/expenses", json={**FOOD, "date": "0099-06-01T00:00:00.000Z"})
        assert created.status_code == 201
        assert created.json()["date"] == "0099-06-01T00:00:00.000Z"

        again = client.post("/api/expenses", json={**FOOD, "date": created.json()["date"]})
        assert again.status_code == 201
        assert again.json()["date"] == created.json()["date"]

    def test_get_unknown(self, client):
        """Test an unknown id is a 404 with a message."""
        response = client.get("/api/expenses/999999")
        assert response.status_code == 404
        assert "message" in response.json()

    @pytest.mark.parametrize("method", ["GET", "DELETE"])
    def test_malformed_id(self, client, method):
        """Test non-integer ids are a 400, not a 404."""
        response = client.request(method, "/api/expenses/abc")
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid ID format"}

    def test_largest_id_is_not_found(self, client):
        """Test ids up to the 64-bit limit are looked up, larger ones are malformed."""
        assert client.get("/api/expenses/9223372036854775807").status_code == 404
        assert client.get("/api/expenses/9223372036854775808").status_code == 400

    def test_delete_twice(self, client):
        """Test delete is 204 then 404."""
        created = client.post("/api/expenses", json=FOOD).json()
        first = client.delete(f"/api/expenses/{created['id']}")
        assert first.status_code == 204
        assert first.content == b""
        assert client.delete(f"/api/expenses/{created['id']}").status_code == 404
        assert client.get(f"/api/expenses/{created['id']}").status_code == 404

    def test_list_default_order(self, client):
        """Test lists come back oldest first."""
        client.post("/api/expenses", json={**FOOD, "date": "2024-03-05"})
        client.post("/api/expenses", json={**FOOD, "date": "2024-03-01"})
        dates = [e["date"] for e in client.get("/api/expenses").json()]
        assert dates == ["2024-03-01T00:00:00.000Z", "2024-03-05T00:00:00.000Z"]

    def test_list_filters_and_sort(self, client):
        """Test category, date range and sort query parameters."""
        client.post("/api/expenses", json={"category": "Food", "amount": "5", "date": "2024-03-02"})
        client.post("/api/expenses", json={"category": "Food", "amount": "50", "date": "2024-03-03"})
        client.post("/api/expenses", json={"category": "Rent", "amount": "900", "date": "2024-03-03"})
        client.post("/api/expenses", json={"category": "Food", "amount": "7", "date": "2024-04-02"})

        response = client.get(
            "/api/expenses",
            params={"category": "Food", "startDate": "2024-03-01", "endDate": "2024-03-31", "sort": "amount-desc"},
        )
        assert response.status_code == 200
        assert [e["amount"] for e in response.json()] == ["50.00", "5.00"]

    def test_list_bad_sort(self, client):
        """Test an unknown sort is a 400."""
        assert client.get("/api/expenses", params={"sort": "sideways"}).status_code == 400

    def test_indian_expenses_are_separate(self, client):
        """Test the Indian collection does not share rows with expenses."""
        created = client.post("/api/indian-expenses", json={"category": "Groceries", "amount": "250"})
        assert created.status_code == 201
        assert client.get("/api/expenses").json() == []
        assert [e["category"] for e in client.get("/api/indian-expenses").json()] == ["Groceries"]

    def test_summary(self, client):
        """Test the expense summary endpoint."""
        client.post("/api/indian-expenses", json={"category": "Groceries", "amount": "250"})
        client.post("/api/indian-expenses", json={"category": "Fuel", "amount": "100", "date": "2020-01-01"})
        body = client.get("/api/indian-expenses/summary").json()
        assert body["total"] == "350.00"
        assert body["thisMonth"] == "250.00"
        assert body["highestCategory"] == "Groceries"
        assert body["highestAmount"] == "250.00"
        assert body["count"] == 2


class TestSalaryEndpoints:
    """Tests for /api/salaries."""

    def test_create_salary(self, client):
        """Test a salary is created with a canonical month."""
        response = client.post("/api/salaries", json={**MARCH_SALARY, "month": "march"})
        assert response.status_code == 201
        body = response.json()
        assert body["month"] == "March"
        assert body["year"] == 2024
        assert body["amount"] == "3000.00"
        assert body["notes"] is None

    def test_whole_number_float_year(self, client):
        """Test a year written as 2024.0 is accepted."""
        response = client.post("/api/salaries", json={**MARCH_SALARY, "year": 2024.0})
        assert response.status_code == 201
        assert response.json()["year"] == 2024

    def test_missing_month(self, client):
        """Test a salary without month is a 400 naming month."""
        response = client.post("/api/salaries", json={"amount": 3000, "year": 2024})
        assert response.status_code == 400
        assert "month" in [e["field"] for e in response.json()["errors"]]

    def test_patch_amount_keeps_period(self, client):
        """Test a partial update changes only the amount."""
        created = client.post("/api/salaries", json=MARCH_SALARY).json()
        response = client.patch(f"/api/salaries/{created['id']}", json={"amount": 5000})
        assert response.status_code == 200
        body = response.json()
        assert body["amount"] == "5000.00"
        assert body["month"] == "March"
        assert body["year"] == 2024
        assert body["createdAt"] == created["createdAt"]

    def test_patch_invalid(self, client):
        """Test an invalid update is a 400 and changes nothing."""
        created = client.post("/api/salaries", json=MARCH_SALARY).json()
        response = client.patch(f"/api/salaries/{created['id']}", json={"amount": "-1"})
        assert response.status_code == 400
        assert client.get(f"/api/salaries/{created['id']}").json()["amount"] == "3000.00"

    def test_patch_unknown(self, client):
        """Test updating an unknown salary is a 404."""
        response = client.patch("/api/salaries/424242", json={"amount": 10})
        assert response.status_code == 404

    def test_patch_malformed_id(self, client):
        """Test a malformed id is a 400 even with a valid body."""
        response = client.patch("/api/salaries/1.5", json={"amount": 10})
        assert response.status_code == 400

    def test_list_by_year_and_sort(self, client):
        """Test the year filter and pay-period sort."""
        client.post("/api/salaries", json={"amount": 1, "month": "March", "year": 2024})
        client.post("/api/salaries", json={"amount": 2, "month": "January", "year": 2024})
        client.post("/api/salaries", json={"amount": 3, "month": "May", "year": 2023})

        response = client.get("/api/salaries", params={"year": "2024", "sort": "date-asc"})
        assert [s["month"] for s in response.json()] == ["January", "March"]

    def test_delete_twice(self, client):
        """Test delete is 204 then 404."""
        created = client.post("/api/salaries", json=MARCH_SALARY).json()
        assert client.delete(f"/api/salaries/{created['id']}").status_code == 204
        assert client.delete(f"/api/salaries/{created['id']}").status_code == 404


class TestOverviewEndpoints:
    """Tests for /api/dashboard and /api/health."""

    def test_dashboard(self, client):
        """Test income, spending and category breakdown for a month."""
        client.post("/api/salaries", json=MARCH_SALARY)
        client.post("/api/expenses", json=FOOD)
        client.post("/api/expenses", json={"category": "Rent", "amount": "1000", "date": "2024-03-02"})
        client.post("/api/expenses", json={"category": "Rent", "amount": "1000", "date": "2024-04-02"})

        response = client.get("/api/dashboard", params={"month": "March", "year": "2024"})
        assert response.status_code == 200
        assert response.json() == {
            "month": "March",
            "year": 2024,
            "totalIncome": "3000.00",
            "totalExpenses": "1042.50",
            "savings": "1957.50",
            "byCategory": [
                {"category": "Food", "amount": "42.50"},
                {"category": "Rent", "amount": "1000.00"},
            ],
        }

    def test_dashboard_indian_region(self, client):
        """Test the region parameter switches the expense collection."""
        client.post("/api/expenses", json=FOOD)
        client.post("/api/indian-expenses", json={"category": "Fuel", "amount": "99"})
        body = client.get("/api/dashboard", params={"region": "indian"}).json()
        assert body["totalExpenses"] == "99.00"
        assert body["month"] is None

    def test_dashboard_bad_month(self, client):
        """Test an unknown month is a 400."""
        assert client.get("/api/dashboard", params={"month": "Smarch"}).status_code == 400

    def test_health(self, client):
        """Test the health check names the backend."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["storage"] in ("memory", "database")


class BrokenExpenseStorage(InMemoryExpenseStorage):
    """Store whose reads and writes fail."""

    async def list_expenses(self):
        raise StorageError("disk full at /var/lib/finance")

    async def create_expense(self, payload):
        raise StorageError("disk full at /var/lib/finance")

    async def get_expense_by_id(self, expense_id):
        raise RuntimeError("unexpected driver state")


def broken_client(degrade: bool = False) -> TestClient:
    expenses = ExpenseFlow(BrokenExpenseStorage(), degrade_list_failures=degrade)
    indian = ExpenseFlow(InMemoryExpenseStorage(), RecordKind.INDIAN_EXPENSE)
    salaries = SalaryFlow(InMemorySalaryStorage())
    components = AppComponents(
        expenses=expenses,
        indian_expenses=indian,
        salaries=salaries,
        dashboard=DashboardFlow(expenses, indian, salaries),
        backend="memory",
    )
    return TestClient(create_app(components))


class TestFailures:
    """Tests for storage failures surfacing as generic 500s."""

    def test_create_failure_is_generic_500(self):
        """Test the cause is not echoed to the client."""
        response = broken_client().post("/api/expenses", json=FOOD)
        assert response.status_code == 500
        assert response.json() == {"message": "Failed to create expense"}

    def test_validation_still_runs_first(self):
        """Test an invalid payload never reaches the failing store."""
        response = broken_client().post("/api/expenses", json={"category": "Food"})
        assert response.status_code == 400

    def test_unexpected_exception_is_generic_500(self):
        """Test non-storage exceptions are also reported generically."""
        response = broken_client().get("/api/expenses/1")
        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch expense"}

    def test_list_failure_is_500_by_default(self):
        """Test a failed list read is not disguised as an empty list."""
        response = broken_client().get("/api/expenses")
        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch expenses"}

    def test_list_failure_degrades_when_enabled(self):
        """Test the opt-in setting turns a failed list into []."""
        response = broken_client(degrade=True).get("/api/expenses")
        assert response.status_code == 200
        assert response.json() == []

    def test_dashboard_failure(self):
        """Test a failed dashboard read is a generic 500."""
        response = broken_client().get("/api/dashboard")
        assert response.status_code == 500
        assert response.json() == {"message": "Failed to build dashboard"}
