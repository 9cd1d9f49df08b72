"""Integration tests for standardized error responses."""

import pytest

pytestmark = pytest.mark.integration


class TestStandardizedErrors:
    def test_auth_error_has_standard_format(self, api_client):
        response = api_client.get("/api/v1/orders/")

        assert response.status_code == 401
        data = response.json()
        assert data["type"] == "authentication_error"
        assert isinstance(data["errors"], list)
        assert data["errors"][0]["code"] == "not_authenticated"
        assert data["errors"][0]["attr"] is None

    def test_parse_error_has_standard_format(self, auth_client):
        response = auth_client.post("/api/v1/orders/", data="{", content_type="application/json")

        assert response.status_code == 400
        data = response.json()
        assert data["type"] == "validation_error"
        assert data["errors"][0]["code"] == "parse_error"

    def test_domain_error_has_standard_format(self, auth_client):
        response = auth_client.post(
            "/api/v1/orders/", {"customer_name": "Maria"}, format="json"
        )

        assert response.status_code == 400
        data = response.json()
        assert set(data) == {"type", "errors"}
        assert set(data["errors"][0]) == {"code", "detail", "attr"}

    def test_method_not_allowed(self, auth_client):
        response = auth_client.put("/api/v1/order-statuses/", {}, format="json")

        assert response.status_code == 405
        assert response.json()["type"] == "client_error"
