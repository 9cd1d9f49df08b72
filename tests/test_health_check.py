from unittest.mock import patch

import pytest


@pytest.mark.integration
class TestHealthCheck:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert data["services"]["database"]["status"] == "up"
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_no_authentication_required(self, client):
        assert client.get("/health").status_code == 200

    def test_cache_down_is_unhealthy(self, client):
        with patch(
            "modules.core.views._check_cache", side_effect=ConnectionError("redis unreachable")
        ):
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}
        assert data["services"]["database"]["status"] == "up"
