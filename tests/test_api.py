from collections.abc import Generator

import pytest
from conftest import FakeAIClient
from fastapi.testclient import TestClient

from statement_categorizer.app import app
from statement_categorizer.integration.store import CategoryStoreError, InMemoryCategoryStore
from statement_categorizer.manager import Categorizer
from statement_categorizer.models import CategoryConfig

client = TestClient(app)


@pytest.fixture
def store() -> InMemoryCategoryStore:
    return InMemoryCategoryStore(
        categories=[CategoryConfig(name="Climbing", keywords=["BOULDER"])],
        creditor_mappings={"acme sa": "Salary"},
    )


@pytest.fixture
def categorizer(store, settings, fast_limiter) -> Generator[Categorizer, None, None]:
    had_categorizer = hasattr(app.state, "categorizer")
    original = getattr(app.state, "categorizer", None)
    instance = Categorizer(store, FakeAIClient(answer="Travel"), settings=settings, rate_limiter=fast_limiter)
    app.state.categorizer = instance
    yield instance
    instance.close()
    if had_categorizer:
        app.state.categorizer = original
    else:
        delattr(app.state, "categorizer")


def test_categorize_direct_mapping(categorizer):
    response = client.post("/categorize", json={"transaction": {"party_name": "ACME SA"}})

    assert response.status_code == 200
    data = response.json()
    assert data["category"]["name"] == "Salary"
    assert data["source"] == "DirectMapping"
    assert data["confidence"] == 1.0


def test_categorize_ai_fallback(categorizer):
    response = client.post(
        "/categorize",
        json={"transaction": {"party_name": "EasyJet Airline", "is_debtor": True, "amount": "120.00"}},
    )

    assert response.status_code == 200
    assert response.json()["category"]["name"] == "Travel"
    assert response.json()["source"] == "AI"
    assert categorizer.get_debtor_category("easyjet airline") == "Travel"


def test_categorize_empty_party_is_uncategorized(categorizer):
    response = client.post("/categorize", json={"transaction": {"party_name": ""}})

    assert response.status_code == 200
    data = response.json()
    assert data["category"] == {"name": "Uncategorized", "description": "Uncategorized transaction"}
    assert data["confidence"] == 0.0


def test_categorize_batch(categorizer):
    response = client.post(
        "/categorize/batch",
        json={
            "transactions": [
                {"party_name": "ACME SA"},
                {"party_name": "Boulder Lounge"},
                {"party_name": ""},
            ]
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert [c["name"] for c in data["categories"]] == ["Salary", "Climbing", "Uncategorized"]
    assert data["stats"]["total"] == 3
    assert data["stats"]["successful"] == 2
    assert data["stats"]["uncategorized"] == 1
    assert data["stats"]["success_rate"] == pytest.approx(66.67)


def test_get_categories(categorizer):
    response = client.get("/categories")

    assert response.status_code == 200
    names = response.json()
    assert "Groceries" in names
    assert "Climbing" in names
    assert names[-1] == "Climbing"


def test_update_mapping_persists(categorizer, store):
    response = client.put("/mappings/debtor", json={"party_name": "Fressnapf", "category": "Pets"})

    assert response.status_code == 200
    assert response.json()["changed"] is True
    assert store.debtor_mappings == {"fressnapf": "Pets"}

    again = client.put("/mappings/debtor", json={"party_name": "FRESSNAPF", "category": "Pets"})
    assert again.json()["changed"] is False


def test_update_mapping_invalid_type(categorizer):
    response = client.put("/mappings/vendor", json={"party_name": "X", "category": "Pets"})
    assert response.status_code == 422


def test_update_mapping_save_failure(categorizer, store):
    store.save_creditor_mappings_error = CategoryStoreError("read-only")

    response = client.put("/mappings/creditor", json={"party_name": "X", "category": "Pets"})

    assert response.status_code == 500
    assert "read-only" in response.json()["detail"]


def test_reload_mappings(categorizer, store):
    store.creditor_mappings = {"globex": "Salary"}

    response = client.post("/mappings/reload")

    assert response.status_code == 200
    assert categorizer.get_creditor_category("Globex") == "Salary"
    assert categorizer.get_creditor_category("acme sa") is None


def test_health(categorizer):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["ai"] == "active"
    assert data["semantic_ready"] is False
    assert data["strategies"] == ["DirectMapping", "Keyword", "Semantic", "AI"]


def test_service_not_initialized():
    had_categorizer = hasattr(app.state, "categorizer")
    original = getattr(app.state, "categorizer", None)
    if had_categorizer:
        delattr(app.state, "categorizer")
    try:
        response = client.get("/categories")
    finally:
        if had_categorizer:
            app.state.categorizer = original

    assert response.status_code == 500
    assert response.json()["detail"] == "Service not initialized"
