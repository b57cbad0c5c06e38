from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from API_LAYER.app import app, get_processor
from services.mock_backend import InMemoryFinancialBackend
from tests.helpers import FakeClock, ScriptedClassifier, build_processor

client = TestClient(app)


@pytest.fixture
def live_processor():
    clock = FakeClock()
    classifier = ScriptedClassifier(
        {
            "Gasté 45k en almuerzo": [
                {"intent": "create_expense", "amount": 45000, "category": "Comida", "description": "Almuerzo"}
            ],
            "Compré un carro de 30M": [
                {"intent": "create_expense", "amount": 30000000, "category": "Transporte", "description": "Carro"}
            ],
        }
    )
    processor = build_processor(InMemoryFinancialBackend(clock=clock), classifier, clock)
    app.dependency_overrides[get_processor] = lambda: processor
    yield processor
    app.dependency_overrides.clear()


def test_root_and_health():
    assert client.get("/").status_code == 200
    assert client.get("/health").json() == {"status": "ok"}


def test_process_returns_reply(live_processor):
    response = client.post("/process", json={"user_key": "u1", "text": "Gasté 45k en almuerzo"})

    assert response.status_code == 200
    assert response.json()["reply"].startswith("💸 Gasto registrado!")


def test_metrics_expose_pending_confirmations(live_processor):
    client.post("/process", json={"user_key": "u1", "text": "Compré un carro de 30M"})

    data = client.get("/metrics").json()

    assert data["pending_confirmations"] == 1
    assert data["total"] >= 1


def test_empty_text_is_rejected(live_processor):
    response = client.post("/process", json={"user_key": "u1", "text": ""})

    assert response.status_code == 422


def test_unexpected_failure_is_500():
    broken = MagicMock()
    broken.process_message = AsyncMock(side_effect=RuntimeError("boom"))
    app.dependency_overrides[get_processor] = lambda: broken
    try:
        response = client.post("/process", json={"user_key": "u1", "text": "hola"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert "detail" in response.json()


def test_process_before_startup_is_503():
    response = client.post("/process", json={"user_key": "u1", "text": "hola"})

    assert response.status_code == 503
