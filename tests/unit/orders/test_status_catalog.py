"""Tests for the admin-editable order status catalog."""

from __future__ import annotations

import pytest

from modules.core.settings_provider import LEASING_STATUSES_KEY, StaticSettingsProvider
from modules.orders.constants import DEFAULT_STATUSES
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import OrderStatusDefinition
from modules.orders.statuses import StatusCatalog

pytestmark = pytest.mark.unit


@pytest.fixture()
def catalog():
    return StatusCatalog(StaticSettingsProvider(), ttl=300)


class TestDefinitions:
    def test_falls_back_to_built_in_statuses(self, catalog):
        assert catalog.names() == [status.name for status in DEFAULT_STATUSES]
        assert catalog.default_status() == "New"

    def test_table_rows_replace_built_ins(self, catalog):
        OrderStatusDefinition.objects.create(name="Received", is_default=True)
        OrderStatusDefinition.objects.create(name="Packed", sort_order=1)

        assert catalog.names() == ["Received", "Packed"]
        assert catalog.default_status() == "Received"

    def test_catalog_is_cached_until_saved_through_it(self, catalog):
        assert "Packed" not in catalog.names()

        OrderStatusDefinition.objects.create(name="Packed")
        assert "Packed" not in catalog.names()

        catalog.save_definition("Packing", color="#000000")
        assert set(catalog.names()) == {"Packed", "Packing"}

    def test_seed_defaults_is_idempotent(self, catalog):
        assert catalog.seed_defaults() == len(DEFAULT_STATUSES)
        assert catalog.seed_defaults() == 0
        assert OrderStatusDefinition.objects.filter(is_default=True).count() == 1


class TestValidate:
    def test_known_status(self, catalog):
        assert catalog.validate(" Shipped ") == "Shipped"

    @pytest.mark.parametrize("status", ["", "shipped", "Teleported"])
    def test_unknown_status(self, catalog, status):
        with pytest.raises(InvalidOrderStatus):
            catalog.validate(status)

    def test_leasing_prefix_is_accepted(self, catalog):
        assert catalog.validate("LeasingViaTBI") == "LeasingViaTBI"

    def test_bare_prefix_is_not_a_leasing_status(self, catalog):
        with pytest.raises(InvalidOrderStatus):
            catalog.validate("LeasingVia")

    def test_configured_leasing_status(self):
        catalog = StatusCatalog(
            StaticSettingsProvider({LEASING_STATUSES_KEY: "UniCredit Consumer"}), ttl=300
        )

        assert catalog.is_leasing_status("UniCredit Consumer")
        assert catalog.validate("UniCredit Consumer") == "UniCredit Consumer"
