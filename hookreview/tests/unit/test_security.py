from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from hookreview.api.main import app
from hookreview.api.routes.webhooks import get_orchestrator
from hookreview.models.review_record import ReviewRecord, ReviewStatus

API_KEY_HEADER = "X-HookReview-API-KEY"


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield orchestrator
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_review_status_with_valid_key(client, orchestrator):
    record = ReviewRecord(
        id=5, repository_id=1, pr_number=7, status=ReviewStatus.COMPLETED, tokens_consumed=1500
    )
    orchestrator.get_review_status.return_value = record

    response = client.get("/api/reviews/5", headers={API_KEY_HEADER: "test_api_key"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == 5
    assert data["status"] == "completed"
    assert data["tokens_consumed"] == 1500
    orchestrator.get_review_status.assert_called_once_with(5)


def test_unknown_review_is_not_found(client, orchestrator):
    orchestrator.get_review_status.return_value = None

    response = client.get("/api/reviews/404", headers={API_KEY_HEADER: "test_api_key"})

    assert response.status_code == 404
    assert response.json()["error"] == "Review 404 not found"


def test_wrong_api_key_is_unauthorized(client, orchestrator):
    response = client.get("/api/reviews/5", headers={API_KEY_HEADER: "wrong"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or missing API Key"
    orchestrator.get_review_status.assert_not_called()


def test_missing_api_key_is_rejected(client, orchestrator):
    response = client.get("/api/reviews/5")

    assert response.status_code in (401, 403)
    orchestrator.get_review_status.assert_not_called()


def test_server_without_api_key(client, orchestrator, monkeypatch):
    monkeypatch.setattr("hookreview.api.security.API_KEY", None)

    response = client.get("/api/reviews/5", headers={API_KEY_HEADER: "anything"})

    assert response.status_code == 500
    assert response.json()["detail"] == "API Key not configured on server."


def test_review_status_serializes_cost_and_timestamps(client, orchestrator):
    record = ReviewRecord(
        id=6, repository_id=1, pr_number=8, estimated_cost=Decimal("0.003")
    )
    record.start()
    orchestrator.get_review_status.return_value = record

    response = client.get("/api/reviews/6", headers={API_KEY_HEADER: "test_api_key"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "in_progress"
    assert data["estimated_cost"] == 0.003
    assert isinstance(data["started_at"], str)
    assert isinstance(data["created_at"], str)
