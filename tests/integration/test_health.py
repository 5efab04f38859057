"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["timestamp"] is not None


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_returns_200_when_database_is_up(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert [c["name"] for c in data["checks"]] == ["database"]

    def test_readiness_returns_503_when_database_is_down(self, mock_supabase_client: MagicMock) -> None:
        """Test that a failing database check marks the service unready."""
        with patch(
            "src.api.routes.health.check_database_connection",
            return_value={"healthy": False, "error": "Connection refused"},
        ):
            from src.main import app

            with TestClient(app) as client:
                response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"][0]["error"] == "Connection refused"
