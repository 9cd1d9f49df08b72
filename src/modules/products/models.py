"""Inventory models: products, bundle components and the stock ledger.

Business rules implemented:
- SKU is unique and normalised to uppercase.
- ``current_stock`` can never be negative (DB check constraint).
- A bundle's availability is derived from its components; its own
  ``current_stock`` is informational only.
- ``reserved_stock`` counts units held by orders awaiting deduction; it is
  informational and never reduces availability.
- ``version`` is bumped on every stock write and used as the optimistic
  concurrency token by ``apply_stock_delta``.
- Stock movements are append-only: ``stock_after == stock_before + signed
  quantity`` is validated on insert and rows can never be updated or deleted.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class Product(BaseModel):
    """Catalog product, plain or bundle.

    Products are never hard-deleted while referenced by stock movements
    (``PROTECT``); ``is_active = False`` hides a product from sale.
    """

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    purchase_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    sale_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    current_stock = models.IntegerField(default=0)
    reserved_stock = models.PositiveIntegerField(default=0)
    min_stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    is_bundle = models.BooleanField(default=False)
    external_bundle_type = models.CharField(  # noqa: DJ01
        max_length=50, null=True, blank=True, default=None
    )
    external_id = models.CharField(  # noqa: DJ01
        max_length=100, null=True, blank=True, default=None, db_index=True
    )
    version = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "inventory_products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.current_stock is not None and self.current_stock < 0:
            raise ValidationError({"current_stock": "Stock cannot be negative."})

    @property
    def is_low_stock(self) -> bool:
        return not self.is_bundle and self.current_stock <= self.min_stock

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                sku=self.sku,
                is_bundle=self.is_bundle,
            )

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class BundleComponent(BaseModel):
    """``quantity`` units of ``component`` are consumed per unit of ``parent``."""

    parent = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="components",
    )
    component = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="used_in_bundles",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )

    class Meta:
        db_table = "product_bundles"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["parent", "component"],
                name="product_bundles_unique_component",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="product_bundles_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.parent_id} <- {self.quantity} x {self.component_id}"


class MovementType(models.TextChoices):
    IN = "in", "Stock in"
    OUT = "out", "Stock out"
    RETURN = "return", "Return"
    ADJUSTMENT_IN = "adjustment_in", "Adjustment (+)"
    ADJUSTMENT_OUT = "adjustment_out", "Adjustment (-)"


DECREASING_MOVEMENTS = {MovementType.OUT, MovementType.ADJUSTMENT_OUT}


def signed_quantity(quantity: int, movement_type: str) -> int:
    """Return the stock delta a movement of ``movement_type`` represents."""
    return -quantity if movement_type in DECREASING_MOVEMENTS else quantity


class StockMovement(BaseModel):
    """Immutable ledger entry for one stock change of one product."""

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="movements",
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    stock_before = models.IntegerField()
    stock_after = models.IntegerField()
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "stock_movements"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["product", "-created_at"],
                name="movements_product_idx",
            ),
        ]

    @property
    def signed_quantity(self) -> int:
        return signed_quantity(self.quantity, self.movement_type)

    def clean(self) -> None:
        super().clean()
        if self.stock_after != self.stock_before + self.signed_quantity:
            raise ValidationError(
                {"stock_after": "stock_after must equal stock_before + signed quantity."}
            )

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValidationError("Stock movements are immutable.")
        self.clean()
        self.total_price = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ValidationError("Stock movements are append-only.")

    def __str__(self) -> str:
        return (
            f"{self.movement_type} {self.quantity} "
            f"({self.stock_before} -> {self.stock_after})"
        )
