"""Integration tests for the Product API.

Covers:
- CRUD through the service layer (create books stock, delete deactivates).
- Bundle configuration, availability and the limiting component.
- Manual stock adjustments, 409 on shortfall, movement history.
- Filters and pagination.
"""

from __future__ import annotations

import pytest

from modules.products.models import Product, StockMovement

pytestmark = pytest.mark.integration

PRODUCTS_URL = "/api/v1/products/"


def _detail(product_id, suffix=""):
    return f"{PRODUCTS_URL}{product_id}/{suffix}"


class TestProductCRUD:
    def test_create(self, auth_client):
        response = auth_client.post(
            PRODUCTS_URL,
            {"sku": "cam-001", "name": "Action Camera", "sale_price": "99.90", "current_stock": 4},
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["sku"] == "CAM-001"
        assert body["current_stock"] == 4
        assert StockMovement.objects.filter(product_id=body["id"]).count() == 1

    def test_create_duplicate_sku(self, auth_client, make_product):
        make_product(sku="CAM-001")

        response = auth_client.post(
            PRODUCTS_URL, {"sku": "CAM-001", "name": "Other"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "duplicate_sku"

    def test_create_invalid(self, auth_client):
        response = auth_client.post(
            PRODUCTS_URL, {"sku": "CAM-001", "name": "Camera", "sale_price": "-1"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_retrieve_unknown(self, auth_client):
        response = auth_client.get(_detail("00000000-0000-0000-0000-000000000000"))

        assert response.status_code == 404

    def test_patch_ignores_stock(self, auth_client, make_product):
        product = make_product(stock=5)

        response = auth_client.patch(
            _detail(product.id), {"name": "Renamed", "current_stock": 50}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["current_stock"] == 5

    def test_delete_deactivates(self, auth_client, make_product):
        product = make_product()

        response = auth_client.delete(_detail(product.id))

        assert response.status_code == 204
        product.refresh_from_db()
        assert product.is_active is False


class TestBundleAPI:
    def test_configure_and_read_availability(self, auth_client, make_product, make_bundle):
        camera = make_product(sku="CAM-001", stock=10)
        mount = make_product(sku="MNT-001", stock=7)
        bundle = make_bundle()

        response = auth_client.put(
            _detail(bundle.id, "bundle/"),
            {
                "components": [
                    {"component_id": str(camera.id), "quantity": 1},
                    {"component_id": str(mount.id), "quantity": 2},
                ]
            },
            format="json",
        )
        availability = auth_client.get(_detail(bundle.id, "availability/")).json()

        assert response.status_code == 200
        assert sorted(c["component_sku"] for c in response.json()) == ["CAM-001", "MNT-001"]
        assert availability["available"] == 3
        assert availability["is_bundle"] is True
        assert availability["limiting_component_id"] == str(mount.id)

    def test_get_components(self, auth_client, make_product, make_bundle):
        camera = make_product(sku="CAM-001", stock=10)
        bundle = make_bundle(components=[(camera, 2)])

        response = auth_client.get(_detail(bundle.id, "bundle/"))

        assert response.json() == [
            {
                "component_id": str(camera.id),
                "component_sku": "CAM-001",
                "component_name": "Product CAM-001",
                "component_stock": 10,
                "quantity": 2,
            }
        ]

    def test_self_reference_rejected(self, auth_client, make_bundle):
        bundle = make_bundle()

        response = auth_client.put(
            _detail(bundle.id, "bundle/"),
            {"components": [{"component_id": str(bundle.id)}]},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "invalid_bundle"


class TestStockAPI:
    def test_adjust_stock(self, auth_client, make_product):
        product = make_product(stock=3)

        response = auth_client.post(
            _detail(product.id, "adjust-stock/"),
            {"movement_type": "in", "quantity": 5, "reason": "Delivery 42"},
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert (body["stock_before"], body["stock_after"]) == (3, 8)
        assert body["reason"] == "Delivery 42"

    def test_adjust_stock_shortfall(self, auth_client, make_product):
        product = make_product(stock=3)

        response = auth_client.post(
            _detail(product.id, "adjust-stock/"),
            {"movement_type": "adjustment_out", "quantity": 5},
            format="json",
        )

        assert response.status_code == 409
        error = response.json()["errors"][0]
        assert error["code"] == "insufficient_stock"
        assert error["available"] == 3

    def test_sale_movements_are_not_manual(self, auth_client, make_product):
        product = make_product(stock=3)

        response = auth_client.post(
            _detail(product.id, "adjust-stock/"),
            {"movement_type": "out", "quantity": 1},
            format="json",
        )

        assert response.status_code == 400

    def test_movements(self, auth_client, make_product):
        product = make_product(stock=3)
        auth_client.post(
            _detail(product.id, "adjust-stock/"),
            {"movement_type": "in", "quantity": 2},
            format="json",
        )

        response = auth_client.get(_detail(product.id, "movements/"))

        assert [m["movement_type"] for m in response.json()] == ["in"]


class TestProductListing:
    def test_filters(self, auth_client, make_product, make_bundle):
        make_product(sku="CAM-001", stock=1, min_stock=5)
        make_product(sku="MNT-001", stock=10, min_stock=5)
        make_bundle(sku="KIT-001")

        low = auth_client.get(PRODUCTS_URL, {"low_stock": "true"}).json()["results"]
        bundles = auth_client.get(PRODUCTS_URL, {"bundle": "true"}).json()["results"]

        assert [p["sku"] for p in low] == ["CAM-001"]
        assert [p["sku"] for p in bundles] == ["KIT-001"]

    def test_pagination_caps_page_size(self, auth_client):
        Product.objects.bulk_create(
            Product(sku=f"SKU-{i:03d}", name=f"Product {i:03d}") for i in range(120)
        )

        default = auth_client.get(PRODUCTS_URL).json()
        capped = auth_client.get(PRODUCTS_URL, {"page_size": 500}).json()
        last = auth_client.get(PRODUCTS_URL, {"page_size": 50, "page": 3}).json()

        assert default["count"] == 120
        assert len(default["results"]) == 20
        assert len(capped["results"]) == 100
        assert len(last["results"]) == 20
        assert last["next"] is None

    def test_requires_authentication(self, api_client):
        response = api_client.get(PRODUCTS_URL)

        assert response.status_code == 401
