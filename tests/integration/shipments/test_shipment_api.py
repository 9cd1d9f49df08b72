"""Integration tests for the shipment and courier endpoints.

Covers:
- POST /api/v1/orders/{id}/shipments/ success, 404 courier, 409 policy, 502.
- GET /api/v1/shipments/{id}/, /label/, /status/, /cancel/.
- GET /api/v1/couriers/ and POST /couriers/{code}/price/.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.core.settings_provider import ALLOW_MULTIPLE_SHIPMENTS_KEY, CachedSettingsProvider
from modules.shipments.exceptions import CourierGatewayError
from modules.shipments.gateways import ICourierGateway, IssuedWaybill, gateway_registry
from modules.shipments.models import Courier, Shipment

pytestmark = pytest.mark.integration


class StubGateway(ICourierGateway):
    def __init__(self):
        self.fail = False
        self.issued = 0

    def create_shipment(self, request):
        if self.fail:
            raise CourierGatewayError("econt", "createShipment rejected with HTTP 503", 503)
        self.issued += 1
        return IssuedWaybill(f"1000{self.issued}")

    def get_label(self, waybill_number):
        if self.fail:
            raise CourierGatewayError("econt", "getLabel failed")
        return b"%PDF-label"

    def calculate_price(self, params):
        return Decimal("7.20")


@pytest.fixture()
def stub_gateway(settings):
    settings.SHIPMENT_SENDER = {"name": "Demo Trading Ltd", "phone": "", "city": "", "address": ""}
    Courier.objects.create(
        code="econt", name="Econt", tracking_url_template="https://track.test/{waybill}"
    )
    gateway = StubGateway()
    gateway_registry.register("econt", gateway)
    yield gateway
    gateway_registry.unregister("econt")


def _ship(client, order_id, **payload):
    payload.setdefault("courier_code", "econt")
    return client.post(f"/api/v1/orders/{order_id}/shipments/", payload, format="json")


class TestCreateShipmentAPI:
    def test_create(self, auth_client, stub_gateway, make_order):
        order = make_order()

        response = _ship(auth_client, order.id)

        assert response.status_code == 201
        body = response.json()
        assert body["waybill_number"] == "10001"
        assert body["courier_code"] == "econt"
        assert body["is_active"] is True
        order_body = auth_client.get(f"/api/v1/orders/{order.id}/").json()
        assert order_body["courier_code"] == "econt"
        assert order_body["courier_tracking_url"] == "https://track.test/10001"

    def test_list_for_order(self, auth_client, stub_gateway, make_order):
        order = make_order()
        _ship(auth_client, order.id)

        response = auth_client.get(f"/api/v1/orders/{order.id}/shipments/")

        assert [s["waybill_number"] for s in response.json()] == ["10001"]

    def test_unknown_courier(self, auth_client, stub_gateway, make_order):
        response = _ship(auth_client, make_order().id, courier_code="dhl")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "courier_not_found"

    def test_gateway_failure_is_502_and_writes_nothing(
        self, auth_client, stub_gateway, make_order
    ):
        stub_gateway.fail = True
        order = make_order()

        response = _ship(auth_client, order.id)

        assert response.status_code == 502
        error = response.json()["errors"][0]
        assert error["code"] == "courier_error"
        assert "econt" in error["detail"]
        assert not Shipment.objects.exists()

    def test_single_active_shipment_policy(self, auth_client, stub_gateway, make_order):
        CachedSettingsProvider().set(ALLOW_MULTIPLE_SHIPMENTS_KEY, "false")
        order = make_order()
        _ship(auth_client, order.id)

        response = _ship(auth_client, order.id)

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "active_shipment_exists"

    def test_invalid_payload(self, auth_client, stub_gateway, make_order):
        response = _ship(auth_client, make_order().id, weight="0")

        assert response.status_code == 400


class TestShipmentAPI:
    def test_label(self, auth_client, stub_gateway, make_order):
        shipment_id = _ship(auth_client, make_order().id).json()["id"]

        response = auth_client.get(f"/api/v1/shipments/{shipment_id}/label/")

        assert response.status_code == 200
        assert response["Content-Type"] == "application/pdf"
        assert response.content == b"%PDF-label"

    def test_label_gateway_failure(self, auth_client, stub_gateway, make_order):
        shipment_id = _ship(auth_client, make_order().id).json()["id"]
        stub_gateway.fail = True

        response = auth_client.get(f"/api/v1/shipments/{shipment_id}/label/")

        assert response.status_code == 502

    def test_status_and_cancel(self, auth_client, stub_gateway, make_order):
        shipment_id = _ship(auth_client, make_order().id).json()["id"]

        moved = auth_client.post(
            f"/api/v1/shipments/{shipment_id}/status/", {"status": "in_transit"}, format="json"
        )
        cancelled = auth_client.post(f"/api/v1/shipments/{shipment_id}/cancel/")

        assert moved.json()["status"] == "in_transit"
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["is_active"] is False

    def test_invalid_status(self, auth_client, stub_gateway, make_order):
        shipment_id = _ship(auth_client, make_order().id).json()["id"]

        response = auth_client.post(
            f"/api/v1/shipments/{shipment_id}/status/", {"status": "lost"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "status"

    def test_unknown_shipment(self, auth_client):
        response = auth_client.get("/api/v1/shipments/00000000-0000-0000-0000-000000000000/")

        assert response.status_code == 404


class TestCourierAPI:
    def test_list(self, auth_client, stub_gateway):
        response = auth_client.get("/api/v1/couriers/")

        assert [c["code"] for c in response.json()] == ["econt"]

    def test_price(self, auth_client, stub_gateway):
        response = auth_client.post(
            "/api/v1/couriers/econt/price/", {"weight": "2.5"}, format="json"
        )

        assert response.status_code == 200
        assert response.json() == {"courier_code": "econt", "price": "7.20"}
