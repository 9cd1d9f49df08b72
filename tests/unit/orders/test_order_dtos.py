"""Unit tests for order DTO validation."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.orders.dtos import (
    BulkChangeStatusDTO,
    ChangeStatusDTO,
    CreateOrderDTO,
    LineItemDTO,
    UpdateOrderDTO,
)

pytestmark = pytest.mark.unit


class TestLineItemDTO:
    def test_valid_item(self):
        dto = LineItemDTO(name=" Camera ", catalog_number=" CAM-001 ", quantity=2)

        assert dto.name == "Camera"
        assert dto.catalog_number == "CAM-001"
        assert dto.to_line_item().quantity == 2

    @pytest.mark.parametrize(
        "field, value",
        [("name", "Camera, Mount"), ("catalog_number", "A, B")],
    )
    def test_separator_is_rejected(self, field, value):
        data = {"name": "Camera", field: value}
        with pytest.raises(ValidationError, match="', '"):
            LineItemDTO(**data)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError, match="at least 1"):
            LineItemDTO(name="Camera", quantity=0)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError, match="negative"):
            LineItemDTO(name="Camera", unit_price=Decimal("-1"))

    def test_is_frozen(self):
        dto = LineItemDTO(name="Camera")
        with pytest.raises(ValidationError):
            dto.name = "Other"


class TestCreateOrderDTO:
    def test_with_items(self):
        dto = CreateOrderDTO(customer_name="Maria", items=[{"name": "Camera"}])

        assert dto.items[0].name == "Camera"
        assert dto.source == "manual"

    def test_with_packed_fields(self):
        dto = CreateOrderDTO(
            customer_name="Maria",
            product_name="Camera (x2), Mount",
            catalog_number="CAM-001, MNT-001",
            quantity=3,
            total_price=Decimal("45.00"),
            source="shopify",
        )

        assert dto.items is None
        assert dto.quantity == 3

    def test_items_and_packed_fields_are_exclusive(self):
        with pytest.raises(ValidationError, match="exactly one"):
            CreateOrderDTO(
                customer_name="Maria",
                items=[{"name": "Camera"}],
                product_name="Camera",
            )

    def test_needs_items_or_packed_fields(self):
        with pytest.raises(ValidationError, match="exactly one"):
            CreateOrderDTO(customer_name="Maria")

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one"):
            CreateOrderDTO(customer_name="Maria", items=[])

    def test_blank_customer_rejected(self):
        with pytest.raises(ValidationError, match="Customer name"):
            CreateOrderDTO(customer_name="  ", product_name="Camera")


class TestUpdateOrderDTO:
    def test_changes_exclude_unset_fields_and_items(self):
        dto = UpdateOrderDTO(phone="+359888000111", items=[{"name": "Camera"}])

        assert dto.changes() == {"phone": "+359888000111"}


class TestStatusDTOs:
    def test_status_is_stripped(self):
        assert ChangeStatusDTO(status=" Shipped ").status == "Shipped"

    def test_blank_status_rejected(self):
        with pytest.raises(ValidationError):
            ChangeStatusDTO(status=" ")

    def test_bulk_ids_are_deduplicated_in_order(self):
        dto = BulkChangeStatusDTO(status="Shipped", order_ids=[3, 1, 3, 2, 1])

        assert dto.order_ids == [3, 1, 2]

    def test_bulk_needs_ids(self):
        with pytest.raises(ValidationError):
            BulkChangeStatusDTO(status="Shipped", order_ids=[])
