"""Unit tests for packing and unpacking order line items."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders.codec import LineItem, decode_line_items, encode_line_items

pytestmark = pytest.mark.unit


class TestDecodeSingleItem:
    def test_quantity_and_unit_price_come_from_totals(self):
        (item,) = decode_line_items("Camera", "CAM-001", 2, Decimal("50.00"))

        assert item.name == "Camera"
        assert item.catalog_number == "CAM-001"
        assert item.quantity == 2
        assert item.unit_price == Decimal("25.00")
        assert not item.needs_review

    def test_trailing_marker_is_stripped(self):
        (item,) = decode_line_items("Camera (x3)", "CAM-001", 3, Decimal("30.00"))

        assert item.name == "Camera"
        assert item.quantity == 3

    def test_stored_quantity_wins_over_marker(self):
        (item,) = decode_line_items("Camera (x3)", None, 5, Decimal("50.00"))

        assert item.quantity == 5
        assert item.catalog_number == ""

    def test_zero_quantity_keeps_total_as_price(self):
        (item,) = decode_line_items("Camera", "CAM-001", 0, Decimal("12.00"))

        assert item.quantity == 0
        assert item.unit_price == Decimal("12.00")


class TestDecodeMultipleItems:
    def test_positional_alignment(self):
        items = decode_line_items(
            "Camera (x2), Mount, Card (x3)",
            "CAM-001, MNT-001, CRD-001",
            6,
            Decimal("99.00"),
        )

        assert [(i.name, i.catalog_number, i.quantity) for i in items] == [
            ("Camera", "CAM-001", 2),
            ("Mount", "MNT-001", 1),
            ("Card", "CRD-001", 3),
        ]
        assert all(i.unit_price == 0 for i in items)

    def test_missing_codes_are_padded(self):
        items = decode_line_items("Camera, Mount", "CAM-001", 2, Decimal("20.00"))

        assert [i.catalog_number for i in items] == ["CAM-001", ""]

    def test_no_codes_at_all(self):
        items = decode_line_items("Camera, Mount", None, 2, Decimal("20.00"))

        assert [i.catalog_number for i in items] == ["", ""]

    def test_quantity_mismatch_still_decodes(self):
        items = decode_line_items("Camera (x2), Mount", "A, B", 7, Decimal("20.00"))

        assert [i.quantity for i in items] == [2, 1]
        assert not any(i.needs_review for i in items)


class TestDecodeFallback:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_name_decodes_to_nothing(self, value):
        assert decode_line_items(value, "CAM-001", 1, Decimal("1.00")) == []

    def test_more_codes_than_names_needs_review(self):
        (item,) = decode_line_items("Camera, Mount", "A, B, C", 2, Decimal("20.00"))

        assert item.needs_review
        assert item.name == "Camera, Mount"
        assert item.catalog_number == "A, B, C"
        assert item.quantity == 0

    def test_zero_marker_needs_review(self):
        (item,) = decode_line_items("Camera (x0), Mount", "A, B", 1, Decimal("20.00"))

        assert item.needs_review


class TestEncode:
    def test_packs_names_codes_and_totals(self):
        packed = encode_line_items(
            [
                LineItem("Camera", "CAM-001", 2, Decimal("15.00")),
                LineItem("Mount", "MNT-001", 1, Decimal("5.50")),
            ]
        )

        assert packed.product_name == "Camera (x2), Mount"
        assert packed.catalog_number == "CAM-001, MNT-001"
        assert packed.quantity == 3
        assert packed.total_price == Decimal("35.50")

    def test_no_codes_gives_none(self):
        packed = encode_line_items([LineItem("Camera"), LineItem("Mount")])

        assert packed.catalog_number is None

    def test_empty_codes_are_dropped(self):
        packed = encode_line_items([LineItem("Camera", ""), LineItem("Mount", "MNT-001")])

        assert packed.catalog_number == "MNT-001"

    def test_rejects_quantity_below_one(self):
        with pytest.raises(ValueError, match="quantity"):
            encode_line_items([LineItem("Camera", "CAM-001", 0)])

    def test_decoding_an_encoded_order_gives_the_same_items(self):
        items = [
            LineItem("Camera", "CAM-001", 2),
            LineItem("Mount", "MNT-001", 1),
            LineItem("Card", "CRD-001", 4),
        ]
        packed = encode_line_items(items)

        decoded = decode_line_items(
            packed.product_name, packed.catalog_number, packed.quantity, packed.total_price
        )

        assert decoded == items

    def test_single_item_with_quantity_gets_marker(self):
        packed = encode_line_items([LineItem("Winter Jacket", "WJ-001", 2, Decimal("60.00"))])

        assert packed.product_name == "Winter Jacket (x2)"
        assert packed.catalog_number == "WJ-001"
        assert packed.quantity == 2
        assert packed.total_price == Decimal("120.00")

    def test_items_without_codes_decode_back(self):
        items = [LineItem("Winter Jacket", quantity=2), LineItem("Scarf")]
        packed = encode_line_items(items)

        decoded = decode_line_items(
            packed.product_name, packed.catalog_number, packed.quantity, packed.total_price
        )

        assert decoded == items

    def test_stored_quantity_is_the_sum_of_decoded_quantities(self):
        packed = encode_line_items(
            [
                LineItem("Camera", "CAM-001", 2, Decimal("15.00")),
                LineItem("Mount", "MNT-001", 1, Decimal("5.00")),
                LineItem("Card", "CRD-001", 3, Decimal("8.00")),
            ]
        )

        decoded = decode_line_items(
            packed.product_name, packed.catalog_number, packed.quantity, packed.total_price
        )

        assert packed.quantity == sum(item.quantity for item in decoded) == 6
