"""Shipment DTOs for the Service Layer.

Recipient fields default to the order's contact data; sender fields
default to ``settings.SHIPMENT_SENDER``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CreateShipmentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    courier_code: str
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_city: str = ""
    recipient_address: Optional[str] = None
    recipient_office_code: str = ""
    sender_name: Optional[str] = None
    sender_phone: Optional[str] = None
    sender_city: Optional[str] = None
    sender_address: Optional[str] = None
    cod_amount: Optional[Decimal] = None
    weight: Decimal = Decimal("1.000")

    @field_validator("courier_code")
    @classmethod
    def courier_code_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Courier code must not be empty.")
        return v.strip().lower()

    @field_validator("weight")
    @classmethod
    def weight_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Weight must be positive.")
        return v

    @field_validator("cod_amount")
    @classmethod
    def cod_must_be_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Cash-on-delivery amount cannot be negative.")
        return v


class PriceQuoteDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    weight: Decimal = Decimal("1.000")
    cod_amount: Decimal = Decimal("0.00")
    recipient_city: str = ""
    recipient_office_code: str = ""

    def params(self) -> dict:
        return {key: str(value) for key, value in self.model_dump().items()}
