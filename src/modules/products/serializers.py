"""Inventory DRF serializers for API output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import BundleComponent, Product, StockMovement


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "purchase_price",
            "sale_price",
            "current_stock",
            "reserved_stock",
            "min_stock",
            "is_low_stock",
            "is_active",
            "is_bundle",
            "external_bundle_type",
            "external_id",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BundleComponentSerializer(serializers.ModelSerializer):
    component_sku = serializers.CharField(source="component.sku", read_only=True)
    component_name = serializers.CharField(source="component.name", read_only=True)
    component_stock = serializers.IntegerField(
        source="component.current_stock", read_only=True
    )

    class Meta:
        model = BundleComponent
        fields = [
            "component_id",
            "component_sku",
            "component_name",
            "component_stock",
            "quantity",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product_id",
            "movement_type",
            "quantity",
            "stock_before",
            "stock_after",
            "unit_price",
            "total_price",
            "order_id",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class AvailabilitySerializer(serializers.Serializer):
    """Serializes ``modules.products.stock.Availability``."""

    product_id = serializers.UUIDField()
    available = serializers.IntegerField()
    is_bundle = serializers.BooleanField()
    limiting_component_id = serializers.UUIDField(allow_null=True)
    unconfigured = serializers.BooleanField()
