"""Inventory DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation.
- ``UpdateProductDTO``: input for partial product updates (never stock).
- ``BundleComponentDTO`` / ``ConfigureBundleDTO``: bundle configuration.
- ``StockAdjustmentDTO``: manual stock movement.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.products.models import MovementType

# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    ``current_stock`` is booked as an initial ``in`` movement, never
    written to the product directly.
    """

    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    purchase_price: Decimal = Decimal("0.00")
    sale_price: Decimal = Decimal("0.00")
    current_stock: int = 0
    min_stock: int = 0
    is_bundle: bool = False
    external_bundle_type: Optional[str] = None
    external_id: Optional[str] = None

    @field_validator("sku")
    @classmethod
    def sku_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("SKU must not be empty.")
        return v.strip().upper()

    @field_validator("purchase_price", "sale_price")
    @classmethod
    def price_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    @field_validator("current_stock", "min_stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


class UpdateProductDTO(BaseModel):
    """Immutable DTO for product update requests.

    All fields are optional; only supplied fields will be updated.
    Stock is changed through ``StockAdjustmentDTO`` only.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    min_stock: Optional[int] = None
    is_active: Optional[bool] = None
    external_bundle_type: Optional[str] = None

    @field_validator("purchase_price", "sale_price")
    @classmethod
    def price_must_be_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


class BundleComponentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    component_id: UUID
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Component quantity must be at least 1.")
        return v


class ConfigureBundleDTO(BaseModel):
    """Full replacement of a bundle's components (may be empty)."""

    model_config = ConfigDict(frozen=True)

    components: List[BundleComponentDTO]

    @model_validator(mode="after")
    def no_duplicate_components(self):
        ids = [c.component_id for c in self.components]
        if len(ids) != len(set(ids)):
            raise ValueError("A component can only appear once in a bundle.")
        return self


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------


class StockAdjustmentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    movement_type: str
    quantity: int
    reason: str = ""
    unit_price: Optional[Decimal] = None

    @field_validator("movement_type")
    @classmethod
    def type_must_be_manual(cls, v: str) -> str:
        allowed = {
            MovementType.IN,
            MovementType.ADJUSTMENT_IN,
            MovementType.ADJUSTMENT_OUT,
        }
        if v not in allowed:
            raise ValueError(f"Movement type must be one of {sorted(allowed)}.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v
