"""Analytics and AI endpoint tests."""

import pytest

from fakes import make_budget, make_category, make_txn, utc
from monev.services import ai_config

FOOD = make_category(2, "Makan & Minuman")


@pytest.fixture
def store(store):
    store.transactions = [
        make_txn(5000000, "income", utc(2025, 3, 1)),
        make_txn(-150000, "expense", utc(2025, 3, 3), category_id=FOOD.id),
        make_txn(-25000, "expense", utc(2025, 3, 4), category_id=FOOD.id),
    ]
    store.categories = [FOOD]
    store.budgets = [make_budget(1, FOOD.id, 150000)]
    return store


@pytest.fixture
def reset_ai_provider():
    yield
    ai_config.clear_override()


async def test_requires_authentication(client):
    response = await client.get("/api/v1/analytics/monthly")
    assert response.status_code == 401


async def test_monthly_report(auth_client):
    response = await auth_client.get("/api/v1/analytics/monthly", params={"year": 2025, "month": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["income"] == 5000000
    assert data["expense"] == 175000
    assert data["balance"] == 4825000
    assert data["over_budget_count"] == 1
    assert data["categories"][0]["category_name"] == "Makan & Minuman"
    assert data["degraded"] == []


async def test_invalid_month_rejected(auth_client):
    response = await auth_client.get("/api/v1/analytics/monthly", params={"year": 2025, "month": 13})
    assert response.status_code == 422


@pytest.mark.parametrize("path", ["monthly", "stats", "dashboard", "insights"])
@pytest.mark.parametrize("params", [{"year": 2025, "month": 0}, {"year": 0, "month": 5}])
async def test_zero_period_is_rejected_not_replaced(auth_client, path, params):
    response = await auth_client.get(f"/api/v1/analytics/{path}", params=params)

    assert response.status_code == 422


async def test_degraded_read_still_answers(auth_client, store):
    store.failing = {"list_budgets"}

    response = await auth_client.get("/api/v1/analytics/monthly", params={"year": 2025, "month": 3})

    assert response.status_code == 200
    assert response.json()["degraded"] == ["budgets"]
    assert response.json()["over_budget_count"] == 0


async def test_stats(auth_client):
    response = await auth_client.get("/api/v1/analytics/stats", params={"year": 2025, "month": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == 4825000
    assert data["previous_balance"] == 0
    assert data["growth"] == 100.0


async def test_subscriptions_empty(auth_client):
    response = await auth_client.get("/api/v1/analytics/subscriptions", params={"lang": "en"})

    assert response.status_code == 200
    data = response.json()
    assert data["items"] == []
    assert data["total_monthly_cost"] == 0
    assert data["message"] == "No recurring charges detected."


async def test_subscriptions_rejects_unknown_language(auth_client):
    response = await auth_client.get("/api/v1/analytics/subscriptions", params={"lang": "fr"})
    assert response.status_code == 422


async def test_health(auth_client):
    response = await auth_client.get("/api/v1/analytics/health")

    assert response.status_code == 200
    data = response.json()
    assert data["balance"] == 4825000
    assert data["status"] in ("critical", "warning", "safe", "wealthy")


async def test_insights_with_narrative(auth_client):
    response = await auth_client.get(
        "/api/v1/analytics/insights", params={"year": 2025, "month": 3, "narrative": "true"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["language"] == "id"
    assert data["narrative"] == "Pengeluaran bulan ini terkendali."
    assert data["blocks"][0].startswith("📊 Ringkasan Maret 2025")


async def test_dashboard(auth_client):
    response = await auth_client.get("/api/v1/analytics/dashboard", params={"year": 2025, "month": 3})

    assert response.status_code == 200
    data = response.json()
    assert len(data["recent_transactions"]) == 3
    assert data["recent_transactions"][0]["amount"] == -25000


async def test_categorize(auth_client):
    response = await auth_client.post("/api/v1/ai/categorize", json={"merchant_name": "Netflix"})

    assert response.status_code == 200
    assert response.json()["category"] == "Hiburan"
    assert response.json()["confidence"] == 0.92


async def test_categorize_requires_input(auth_client):
    response = await auth_client.post("/api/v1/ai/categorize", json={"description": "  "})
    assert response.status_code == 422


async def test_ai_status_and_override(auth_client, reset_ai_provider, monkeypatch):
    monkeypatch.setattr("monev.config.settings.openai_api_key", "")
    status = await auth_client.get("/api/v1/ai/status")
    assert status.status_code == 200
    assert status.json()["override"] is False

    invalid = await auth_client.patch("/api/v1/ai/config", json={"provider": "gemini"})
    assert invalid.status_code == 422

    switched = await auth_client.patch("/api/v1/ai/config", json={"provider": "openai"})
    assert switched.status_code == 200
    assert switched.json()["provider"] == "openai"
    assert switched.json()["override"] is True
    assert switched.json()["available"] is False

    cleared = await auth_client.patch("/api/v1/ai/config", json={})
    assert cleared.json()["override"] is False
