"""Order, OrderStatusHistory and OrderStatusDefinition models.

Business rules implemented:
- Orders keep their line items packed into flat fields (``product_name``,
  ``catalog_number``, ``quantity``, ``total_price``); ``modules.orders.codec``
  converts between those fields and a list of line items.
- ``status`` is a free-text label validated against the status catalog at
  the service boundary, not a closed choice list.
- ``stock_applied_at`` marks that the order's stock was deducted; the
  deduction is claimed with a conditional update so it happens once.
- ``reserved_items`` records the units (by product id) the order holds in
  ``Product.reserved_stock`` until its stock is deducted or restored.
- Each status change generates an append-only history record.
- ``code`` is auto-generated as a human-readable identifier when the channel
  does not supply one.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, TimeStampedModel
from modules.orders.constants import DEFAULT_STATUS, ORDER_CODE_MAX_RETRIES
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, TimeStampedModel):
    """Order aggregate root.

    The numeric auto-increment ``id`` is the identifier sales channels and
    couriers reference; ``code`` is the display code.
    """

    code = models.CharField(max_length=50, unique=True, editable=False)
    customer_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="")
    product_name = models.TextField()
    catalog_number = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    quantity = models.PositiveIntegerField(default=1)
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    delivery_address = models.TextField(blank=True, default="")
    comment = models.TextField(blank=True, default="")
    status = models.CharField(max_length=100, default=DEFAULT_STATUS)
    source = models.CharField(max_length=50, default="manual")
    courier = models.ForeignKey(
        "shipments.Courier",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    courier_tracking_url = models.URLField(  # noqa: DJ01
        max_length=500, null=True, blank=True, default=None
    )
    store_reference = models.CharField(  # noqa: DJ01
        max_length=100, null=True, blank=True, default=None
    )
    stock_applied_at = models.DateTimeField(null=True, blank=True, default=None)
    reserved_items = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["store_reference"], name="orders_store_idx"),
        ]

    @property
    def stock_applied(self) -> bool:
        return self.stock_applied_at is not None

    @property
    def stock_reserved(self) -> bool:
        return bool(self.reserved_items)

    # ------------------------------------------------------------------
    # Code generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_code() -> str:
        """Generate a human-readable order code: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.code:
            for _ in range(ORDER_CODE_MAX_RETRIES):
                candidate = self.generate_code()
                if not Order.objects.filter(code=candidate).exists():
                    self.code = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order code after "
                    f"{ORDER_CODE_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} ({self.status})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status changes.

    ``user`` is nullable: ``None`` means the change was performed by the
    system (channel webhook, bulk job).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=100,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=100)
    user = models.ForeignKey(
        "auth.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"


class OrderStatusDefinition(BaseModel):
    """One entry of the admin-editable status catalog."""

    name = models.CharField(max_length=100, unique=True)
    color = models.CharField(max_length=20, default="#6b7280")
    icon = models.CharField(max_length=50, default="circle")
    sort_order = models.PositiveIntegerField(default=0)
    is_default = models.BooleanField(default=False)
    is_terminal = models.BooleanField(default=False)

    class Meta:
        db_table = "order_statuses"
        ordering = ["sort_order", "name"]

    def __str__(self) -> str:
        return self.name
