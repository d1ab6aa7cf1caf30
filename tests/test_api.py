from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _expense(client, amount_cents, day, category="Food"):
    resp = client.post(
        "/api/transactions",
        json={
            "amount_cents": amount_cents,
            "description": "entry",
            "category": category,
            "type": "expense",
            "date": day,
        },
    )
    assert resp.status_code == 201
    return resp.json()


def test_transaction_crud(client):
    created = _expense(client, 1_250, "2025-01-05")
    assert created["occurred_at"].startswith("2025-01-05T12:00")

    listed = client.get("/api/transactions", params={"type": "expense"}).json()
    assert [t["id"] for t in listed] == [created["id"]]

    assert client.delete(f"/api/transactions/{created['id']}").status_code == 204
    assert client.delete(f"/api/transactions/{created['id']}").status_code == 404


def test_transaction_payload_is_validated(client):
    resp = client.post(
        "/api/transactions",
        json={"amount_cents": -1, "description": "x", "category": "Food"},
    )
    assert resp.status_code == 422


def test_expense_limit_status_and_overages(client):
    resp = client.post(
        "/api/expense-limits",
        json={
            "category": "Food",
            "limit_cents": 5_000,
            "period_type": "custom",
            "start_date": "2025-01-01",
            "end_date": "2025-01-31",
        },
    )
    assert resp.status_code == 201
    limit_id = resp.json()["id"]

    _expense(client, 4_000, "2025-01-10")
    crossing = _expense(client, 2_000, "2025-01-20")

    [status] = client.get("/api/expense-limits/status").json()
    assert status["id"] == limit_id
    assert status["spent_cents"] == 6_000
    assert status["exceeded"] is True
    assert status["exceeded_by_cents"] == 1_000

    [flagged] = client.get("/api/expense-limits/exceeded-transactions").json()
    assert flagged["transaction_id"] == crossing["id"]
    assert flagged["exceeded_by_cents"] == 1_000
    assert flagged["period_type"] == "custom"


def test_expense_limit_with_inverted_window_is_rejected(client):
    resp = client.post(
        "/api/expense-limits",
        json={
            "category": "Food",
            "limit_cents": 5_000,
            "period_type": "custom",
            "start_date": "2025-02-01",
            "end_date": "2025-01-01",
        },
    )
    assert resp.status_code == 400
    assert client.get("/api/expense-limits").json() == []


def test_subscription_summary(client):
    today = date.today()
    for name, cost, cycle, offset, category in [
        ("Streaming", 1_599, "monthly", 3, "Entertainment"),
        ("Storage", 12_000, "yearly", 20, None),
    ]:
        resp = client.post(
            "/api/subscriptions",
            json={
                "name": name,
                "cost_cents": cost,
                "billing_cycle": cycle,
                "next_billing_date": (today + timedelta(days=offset)).isoformat(),
                "category": category,
            },
        )
        assert resp.status_code == 201

    summary = client.get("/api/subscriptions/summary").json()
    assert summary["total_active"] == 2
    assert summary["monthly_cost_cents"] == 2_599
    assert summary["yearly_cost_cents"] == 31_188
    assert summary["upcoming_this_week"] == 1
    assert summary["upcoming_this_month"] == 2
    assert summary["by_category"]["Other"] == {
        "count": 1,
        "monthly_cost_cents": 1_000,
    }


def test_unknown_subscription_returns_404(client):
    resp = client.put(
        "/api/subscriptions/42",
        json={
            "name": "Gym",
            "cost_cents": 100,
            "billing_cycle": "monthly",
            "next_billing_date": "2025-01-01",
        },
    )
    assert resp.status_code == 404


def test_preferences_round_trip(client):
    default = client.get("/api/preferences").json()
    assert default["currency"] == "USD"
    assert default["categories"][0] == "Food"

    resp = client.put(
        "/api/preferences",
        json={"currency": "EUR", "theme": "dark", "categories": ["Rent", "rent"]},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["currency_symbol"] == "€"
    assert body["categories"] == ["Rent"]

    assert client.put("/api/preferences", json={"currency": "JPY"}).status_code == 422


def test_csv_import_and_export(client):
    content = (
        "Date,Type,Amount,Category,Description\n"
        "2025-01-05,expense,12.50,Food,Lunch\n"
    )
    resp = client.post(
        "/api/transactions/import",
        files={"file": ("import.csv", content.encode("utf-8"), "text/csv")},
    )
    assert resp.status_code == 201
    assert resp.json() == {"imported": 1}

    exported = client.get("/api/transactions/export.csv")
    assert exported.headers["content-type"].startswith("text/csv")
    assert "2025-01-05,expense,12.50,Food,Lunch" in exported.text


def test_clear_all(client):
    _expense(client, 100, "2025-01-05")
    resp = client.delete("/api/clear-all")
    assert resp.json()["deleted"]["transactions"] == 1
    assert client.get("/api/transactions").json() == []


def test_csv_import_with_overlong_description_is_rejected(client):
    content = (
        "Date,Type,Amount,Category,Description\n"
        "2025-01-05,expense,12.50,Food,Lunch\n"
        f"2025-01-06,expense,1.00,Food,{'x' * 300}\n"
    )
    resp = client.post(
        "/api/transactions/import",
        files={"file": ("import.csv", content.encode("utf-8"), "text/csv")},
    )
    assert resp.status_code == 400
    assert "Row 2" in resp.json()["detail"]
    assert client.get("/api/transactions").json() == []


def test_blank_category_is_rejected_after_stripping(client):
    resp = client.post(
        "/api/transactions",
        json={
            "amount_cents": 100,
            "description": "entry",
            "category": "   ",
            "type": "expense",
        },
    )
    assert resp.status_code == 422

    resp = client.post(
        "/api/expense-limits",
        json={
            "category": " ",
            "limit_cents": 100,
            "period_type": "monthly",
            "period_start": "2025-01-01",
        },
    )
    assert resp.status_code == 422
    assert client.get("/api/expense-limits").json() == []


def test_add_category_and_clear_all_resets_preferences(client):
    resp = client.post("/api/preferences/categories", json={"name": "  Health "})
    assert resp.status_code == 201
    assert resp.json()["categories"][-1] == "Health"

    again = client.post("/api/preferences/categories", json={"name": "health"})
    assert again.json()["categories"].count("Health") == 1
    assert client.post(
        "/api/preferences/categories", json={"name": "  "}
    ).status_code == 422

    client.put("/api/preferences", json={"currency": "EUR"})
    deleted = client.delete("/api/clear-all").json()["deleted"]
    assert deleted["preferences"] == 4

    prefs = client.get("/api/preferences").json()
    assert prefs["currency"] == "USD"
    assert "Health" not in prefs["categories"]
