from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.core.settings_provider import StaticSettingsProvider
from modules.orders.dtos import CreateOrderDTO, LineItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import BundleComponent, Product
from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Settings and the status catalog are cached; start every test cold."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def auth_client():
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    user = get_user_model().objects.create_user(username="operator", password="testpass123")
    client.force_authenticate(user=user)
    client.user = user
    return client


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def settings_values():
    """Runtime settings seen by services built with ``order_service``."""
    return {}


@pytest.fixture()
def order_service(settings_values):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        ledger=StockLedgerDjangoRepository(),
        settings_provider=StaticSettingsProvider(settings_values),
    )


@pytest.fixture()
def make_product():
    def _make(sku="SKU-001", stock=10, **overrides):
        defaults = {
            "name": f"Product {sku}",
            "sale_price": Decimal("10.00"),
            "purchase_price": Decimal("4.00"),
        }
        defaults.update(overrides)
        return Product.objects.create(sku=sku, current_stock=stock, **defaults)

    return _make


@pytest.fixture()
def make_bundle(make_product):
    def _make(sku="KIT-001", components=(), **overrides):
        bundle = make_product(sku=sku, stock=0, is_bundle=True, **overrides)
        for component, quantity in components:
            BundleComponent.objects.create(parent=bundle, component=component, quantity=quantity)
        return bundle

    return _make


@pytest.fixture()
def make_order(order_service):
    def _make(items=None, **overrides):
        if items is None:
            items = [("Widget", "SKU-001", 1, Decimal("10.00"))]
        data = {"customer_name": "Maria Ivanova", "phone": "+359888100200"}
        data.update(overrides)
        dto = CreateOrderDTO(
            items=[
                LineItemDTO(name=name, catalog_number=code, quantity=qty, unit_price=price)
                for name, code, qty, price in items
            ],
            **data,
        )
        return order_service.create_order(dto)

    return _make
