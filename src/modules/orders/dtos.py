"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and the Service layer.
DTOs are immutable (``frozen=True``).

- ``LineItemDTO``: one line item of an order.
- ``CreateOrderDTO``: order creation, either with line items or with
  already packed fields (sales-channel imports).
- ``UpdateOrderDTO``: partial update of contact data and line items.
- ``ChangeStatusDTO`` / ``BulkChangeStatusDTO``: status changes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.orders.codec import LineItem

# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


class LineItemDTO(BaseModel):
    """Immutable DTO for a single line item."""

    model_config = ConfigDict(frozen=True)

    name: str
    catalog_number: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0.00")

    @field_validator("name")
    @classmethod
    def name_must_be_packable(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Line item name must not be empty.")
        if ", " in v:
            raise ValueError("Line item name must not contain ', '.")
        return v

    @field_validator("catalog_number")
    @classmethod
    def catalog_number_must_be_packable(cls, v: str) -> str:
        v = v.strip()
        if ", " in v:
            raise ValueError("Catalog number must not contain ', '.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    def to_line_item(self) -> LineItem:
        return LineItem(
            name=self.name,
            catalog_number=self.catalog_number,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


def _items_must_not_be_empty(items: Optional[List[LineItemDTO]]) -> None:
    if items is not None and not items:
        raise ValueError("Order must have at least one line item.")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Exactly one of ``items`` or ``product_name`` must be given.  Packed
    fields are stored as received; ``quantity`` defaults to 1.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str
    phone: str = ""
    customer_email: str = ""
    items: Optional[List[LineItemDTO]] = None
    product_name: Optional[str] = None
    catalog_number: Optional[str] = None
    quantity: Optional[int] = None
    total_price: Optional[Decimal] = None
    delivery_address: str = ""
    comment: str = ""
    status: Optional[str] = None
    source: str = "manual"
    store_reference: Optional[str] = None
    code: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def customer_name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Customer name must not be empty.")
        return v.strip()

    @model_validator(mode="after")
    def items_or_packed_fields(self):
        _items_must_not_be_empty(self.items)
        has_packed = bool(self.product_name and self.product_name.strip())
        if (self.items is None) == (not has_packed):
            raise ValueError("Provide exactly one of 'items' or 'product_name'.")
        if self.quantity is not None and self.quantity < 0:
            raise ValueError("Quantity cannot be negative.")
        if self.total_price is not None and self.total_price < 0:
            raise ValueError("Total price cannot be negative.")
        return self


class UpdateOrderDTO(BaseModel):
    """Immutable DTO for partial order updates.

    Status is not editable here; use ``ChangeStatusDTO``.  ``items``
    replaces every line item and repacks the order.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: Optional[str] = None
    phone: Optional[str] = None
    customer_email: Optional[str] = None
    items: Optional[List[LineItemDTO]] = None
    delivery_address: Optional[str] = None
    comment: Optional[str] = None
    store_reference: Optional[str] = None
    courier_tracking_url: Optional[str] = None

    @model_validator(mode="after")
    def items_not_empty(self):
        _items_must_not_be_empty(self.items)
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"items"})


class ChangeStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    notes: str = ""

    @field_validator("status")
    @classmethod
    def status_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Status must not be empty.")
        return v.strip()


class BulkChangeStatusDTO(ChangeStatusDTO):
    order_ids: List[int]

    @field_validator("order_ids")
    @classmethod
    def ids_must_not_be_empty(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("At least one order id is required.")
        return list(dict.fromkeys(v))
