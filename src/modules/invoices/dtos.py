"""Invoice DTOs for the Service Layer.

Buyer fields default to the order's contact data.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class IssueInvoiceDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    buyer_name: Optional[str] = None
    buyer_id_number: str = ""
    buyer_address: Optional[str] = None
    buyer_vat_number: str = ""
    buyer_phone: Optional[str] = None
    buyer_email: Optional[str] = None
    product_description: Optional[str] = None
    include_vat: bool = True
    vat_rate: Optional[Decimal] = None
    issue_date: Optional[date] = None
    tax_event_date: Optional[date] = None
    notes: str = ""

    @field_validator("vat_rate")
    @classmethod
    def vat_rate_in_range(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and not Decimal("0") <= v <= Decimal("100"):
            raise ValueError("VAT rate must be between 0 and 100.")
        return v

    @model_validator(mode="after")
    def tax_event_not_after_issue(self):
        if self.issue_date and self.tax_event_date and self.tax_event_date > self.issue_date:
            raise ValueError("Tax event date cannot be after the issue date.")
        return self


class SetInvoiceCounterDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    next_invoice_number: int

    @field_validator("next_invoice_number")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Next invoice number must be at least 1.")
        return v
