"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.app.api.registry import EngineRegistry, get_registry
from backend.app.db.inmemory import InMemoryTripRepository
from backend.app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test health endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("backend.app.api.routes.health.check_db")
    def test_healthz_returns_200_when_db_ok(
        self, mock_check_db: MagicMock, client: TestClient
    ) -> None:
        mock_check_db.return_value = (True, "ok")

        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["components"]["db"] == "ok"

    @patch("backend.app.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(
        self, mock_check_db: MagicMock, client: TestClient
    ) -> None:
        mock_check_db.return_value = (False, "error: OperationalError")

        response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_include_reconcile_counter(self, client: TestClient) -> None:
        registry = EngineRegistry(InMemoryTripRepository())
        app.dependency_overrides[get_registry] = lambda: registry
        try:
            client.post(
                "/trips",
                json={"cities": ["Lisbon"], "start_date": "2025-03-01", "total_days": 4},
            )
            response = client.get("/metrics")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert "timeline_reconcile_total" in response.text
        assert 'trigger="init"' in response.text
