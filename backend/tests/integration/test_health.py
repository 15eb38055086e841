"""
Integration tests for health check endpoints.

Tests the complete health check system with real dependencies:
- /health endpoint (liveness probe)
- /health/ready endpoint (readiness probe with DB and rate limit store checks)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

from datetime import datetime

import pytest

from quizfest import __version__

pytestmark = pytest.mark.integration


class TestHealthEndpointIntegration:
    """Integration tests for /health liveness probe."""

    def test_health_returns_200(self, client):
        """
        Arrange: None needed - endpoint should always work
        Act: GET /health
        Assert: Status 200, response has status and timestamp
        """
        # Act
        response = client.get("/api/health")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        timestamp = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
        assert timestamp.tzinfo is not None

    def test_health_is_not_rate_limited(self, client):
        for _ in range(30):
            assert client.get("/api/health").status_code == 200


class TestReadinessEndpointIntegration:
    """Integration tests for /health/ready readiness probe."""

    def test_ready_with_healthy_dependencies(self, client):
        # Act
        response = client.get("/api/health/ready")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["db"]["healthy"] is True
        assert data["checks"]["rate_limit_store"]["healthy"] is True
        assert data["checks"]["db"]["latency_ms"] >= 0
        assert set(data["checks"]) == {"db", "rate_limit_store"}
        assert data["checks"]["db"]["error"] is None

    def test_not_ready_when_store_unreachable(self, client, monkeypatch):
        """
        Arrange: Make the rate limit store ping fail
        Act: GET /health/ready
        Assert: 503 with the store marked unhealthy and a generic error
        """
        # Arrange
        async def failing_ping():
            raise ConnectionError("connection refused to 10.0.0.5:6379")

        monkeypatch.setattr(client.app.state.rate_limiter.store, "ping", failing_ping)

        # Act
        response = client.get("/api/health/ready")

        # Assert
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["db"]["healthy"] is True
        assert data["checks"]["rate_limit_store"]["healthy"] is False
        assert data["checks"]["rate_limit_store"]["error"] == "Rate limit store unreachable"
        assert "10.0.0.5" not in response.text
