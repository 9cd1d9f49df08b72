"""Courier and Shipment models.

Business rules implemented:
- ``Courier.code`` selects the gateway adapter that talks to the courier.
- A shipment snapshots sender and recipient data at creation time, so later
  order edits do not change what was sent to the courier.
- Shipments are never deleted; cancelling is a status change.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class Courier(BaseModel):
    code = models.SlugField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    tracking_url_template = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL with a {waybill} placeholder.",
    )
    is_enabled = models.BooleanField(default=True)

    class Meta:
        db_table = "couriers"
        ordering = ["name"]

    def tracking_url(self, waybill_number: str) -> str | None:
        if not self.tracking_url_template:
            return None
        return self.tracking_url_template.replace("{waybill}", waybill_number)

    def __str__(self) -> str:
        return self.name


class ShipmentStatus(models.TextChoices):
    CREATED = "created", "Created"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"
    RETURNED = "returned", "Returned"
    CANCELLED = "cancelled", "Cancelled"


CLOSED_SHIPMENT_STATUSES = (
    ShipmentStatus.DELIVERED,
    ShipmentStatus.RETURNED,
    ShipmentStatus.CANCELLED,
)


class Shipment(BaseModel):
    waybill_number = models.CharField(max_length=100)
    courier = models.ForeignKey(
        "shipments.Courier",
        on_delete=models.PROTECT,
        related_name="shipments",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="shipments",
    )

    sender_name = models.CharField(max_length=255)
    sender_phone = models.CharField(max_length=50, blank=True, default="")
    sender_city = models.CharField(max_length=100, blank=True, default="")
    sender_address = models.TextField(blank=True, default="")

    recipient_name = models.CharField(max_length=255)
    recipient_phone = models.CharField(max_length=50)
    recipient_city = models.CharField(max_length=100, blank=True, default="")
    recipient_address = models.TextField(blank=True, default="")
    recipient_office_code = models.CharField(max_length=50, blank=True, default="")

    cod_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    weight = models.DecimalField(
        max_digits=8,
        decimal_places=3,
        default=Decimal("1.000"),
        validators=[MinValueValidator(Decimal("0.001"))],
    )
    status = models.CharField(
        max_length=20,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.CREATED,
    )

    class Meta:
        db_table = "shipments"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["courier", "waybill_number"],
                name="shipments_courier_waybill_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["order", "status"], name="shipments_order_status_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status not in CLOSED_SHIPMENT_STATUSES

    def delete(self, *args, **kwargs):
        raise ValueError("Shipments cannot be deleted; cancel them instead.")

    def __str__(self) -> str:
        return f"{self.courier_id}:{self.waybill_number}"
