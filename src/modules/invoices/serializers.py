"""Invoice DRF serializers for API output."""

from __future__ import annotations

from rest_framework import serializers

from modules.invoices.models import Invoice


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "order_id",
            "seller_name",
            "seller_id_number",
            "seller_address",
            "seller_vat_number",
            "buyer_name",
            "buyer_id_number",
            "buyer_address",
            "buyer_vat_number",
            "buyer_phone",
            "buyer_email",
            "product_description",
            "quantity",
            "unit_price",
            "subtotal",
            "vat_rate",
            "vat_amount",
            "total_amount",
            "issue_date",
            "tax_event_date",
            "notes",
            "created_at",
        ]
        read_only_fields = fields
