"""Integration tests for the correlation ID middleware."""

import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"

        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)

        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")

        request_id = response["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_fixture_header_is_echoed(self, api_client_with_correlation):
        client, cid = api_client_with_correlation

        response = client.get("/health")

        assert response["X-Request-ID"] == cid

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"

        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)

        assert any(custom_id in record.getMessage() for record in caplog.records)

    def test_store_id_is_bound_to_logs(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID="store-cid", HTTP_X_STORE_ID="bg-shop")

        assert any(
            "store_reference" in record.getMessage() and "bg-shop" in record.getMessage()
            for record in caplog.records
        )
