"""Order DRF serializers for API output.

Input is validated by the Pydantic DTOs in ``dtos.py``; these serializers
only shape responses.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderStatusDefinition, OrderStatusHistory


class LineItemSerializer(serializers.Serializer):
    """Read serializer for a decoded ``LineItem``."""

    name = serializers.CharField(read_only=True)
    catalog_number = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    needs_review = serializers.BooleanField(read_only=True)


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderStatusDefinitionSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusDefinition
        fields = ["name", "color", "icon", "sort_order", "is_default", "is_terminal"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with their packed line items."""

    courier_code = serializers.CharField(source="courier.code", read_only=True, default=None)
    stock_applied = serializers.BooleanField(read_only=True)
    stock_reserved = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "code",
            "customer_name",
            "phone",
            "customer_email",
            "product_name",
            "catalog_number",
            "quantity",
            "total_price",
            "delivery_address",
            "comment",
            "status",
            "source",
            "courier_code",
            "courier_tracking_url",
            "store_reference",
            "stock_applied",
            "stock_applied_at",
            "stock_reserved",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the order list."""

    class Meta:
        model = Order
        fields = [
            "id",
            "code",
            "customer_name",
            "product_name",
            "quantity",
            "total_price",
            "status",
            "source",
            "created_at",
        ]
        read_only_fields = fields


class StatusChangeResultSerializer(serializers.Serializer):
    order = OrderSerializer(read_only=True)
    old_status = serializers.CharField(read_only=True, allow_null=True)
    warnings = serializers.ListField(child=serializers.CharField(), read_only=True)
    stock_applied = serializers.BooleanField(read_only=True)
    stock_restored = serializers.BooleanField(read_only=True)
    stock_reserved = serializers.BooleanField(read_only=True)
    reservation_released = serializers.BooleanField(read_only=True)
