"""Shipment DRF serializers for API output."""

from __future__ import annotations

from rest_framework import serializers

from modules.shipments.models import Courier, Shipment


class CourierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Courier
        fields = ["code", "name", "tracking_url_template", "is_enabled"]
        read_only_fields = fields


class ShipmentSerializer(serializers.ModelSerializer):
    courier_code = serializers.CharField(source="courier.code", read_only=True)
    is_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = Shipment
        fields = [
            "id",
            "waybill_number",
            "courier_code",
            "order_id",
            "sender_name",
            "sender_phone",
            "sender_city",
            "sender_address",
            "recipient_name",
            "recipient_phone",
            "recipient_city",
            "recipient_address",
            "recipient_office_code",
            "cod_amount",
            "weight",
            "status",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
