"""Invoice service layer (Use Cases).

Business rules enforced:
- The invoice number equals the counter at issuance and the counter then
  advances by exactly one; both happen in the same transaction, with the
  company settings row locked so concurrent issues serialise.
- Issuing is not idempotent: every call produces a new invoice.
- ``subtotal`` is the order total; ``unit_price = subtotal / quantity``.
- VAT is ``subtotal * rate / 100`` (rate defaults to the company rate),
  zero when VAT is not included.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.invoices.exceptions import (
    CompanySettingsMissing,
    InvoiceIssueError,
    InvoiceNotFound,
)
from modules.orders.exceptions import OrderNotFound

if TYPE_CHECKING:
    from modules.invoices.dtos import IssueInvoiceDTO
    from modules.invoices.models import CompanySettings, Invoice
    from modules.invoices.repositories.interfaces import IInvoiceRepository
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


class InvoiceService:
    def __init__(
        self,
        invoice_repository: IInvoiceRepository,
        order_repository: IOrderRepository,
    ) -> None:
        self._repo = invoice_repository
        self._order_repo = order_repository

    @transaction.atomic
    def issue_invoice(self, order_id: int, dto: IssueInvoiceDTO) -> Invoice:
        """Issue the next-numbered invoice for an order.

        Raises:
            OrderNotFound: order does not exist.
            CompanySettingsMissing: no seller data / counter configured.
            InvoiceIssueError: the order has no quantity, or the counter
                points at a number that is already used.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.quantity < 1:
            raise InvoiceIssueError(f"Order {order.code} has no quantity to invoice.")

        company = self._locked_company()
        number = company.next_invoice_number
        log = logger.bind(order_id=order.id, invoice_number=number)
        if self._repo.number_exists(number):
            log.warning("invoice.number_taken")
            raise InvoiceIssueError(
                f"Invoice number {number} is already used; correct the counter."
            )

        subtotal = Decimal(order.total_price)
        vat_rate = Decimal("0")
        if dto.include_vat:
            vat_rate = company.default_vat_rate if dto.vat_rate is None else dto.vat_rate
        vat_amount = (subtotal * vat_rate / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        issue_date = dto.issue_date or timezone.localdate()

        invoice = self._repo.create(
            {
                "invoice_number": number,
                "order_id": order.id,
                "seller_name": company.company_name,
                "seller_id_number": company.company_id_number,
                "seller_address": company.registered_address,
                "seller_vat_number": company.vat_number,
                "buyer_name": dto.buyer_name or order.customer_name,
                "buyer_id_number": dto.buyer_id_number,
                "buyer_address": (
                    order.delivery_address if dto.buyer_address is None else dto.buyer_address
                ),
                "buyer_vat_number": dto.buyer_vat_number,
                "buyer_phone": order.phone if dto.buyer_phone is None else dto.buyer_phone,
                "buyer_email": (
                    order.customer_email if dto.buyer_email is None else dto.buyer_email
                ),
                "product_description": dto.product_description or order.product_name,
                "quantity": order.quantity,
                "unit_price": (subtotal / order.quantity).quantize(CENT, rounding=ROUND_HALF_UP),
                "subtotal": subtotal,
                "vat_rate": vat_rate,
                "vat_amount": vat_amount,
                "total_amount": subtotal + vat_amount,
                "issue_date": issue_date,
                "tax_event_date": dto.tax_event_date or issue_date,
                "notes": dto.notes,
            }
        )
        self._repo.set_next_number(company.id, number + 1)

        log.info("invoice.issued", invoice_id=str(invoice.id), total=str(invoice.total_amount))
        return invoice

    @transaction.atomic
    def set_next_invoice_number(self, next_number: int) -> CompanySettings:
        """Manual counter correction.

        Raises:
            ValueError: ``next_number`` is below 1.
            CompanySettingsMissing: no company settings row exists.
        """
        if next_number < 1:
            raise ValueError("Next invoice number must be at least 1.")
        company = self._locked_company()
        last = self._repo.last_number()
        if last is not None and next_number <= last:
            logger.warning(
                "invoice.counter_rewound", next_number=next_number, last_number=last
            )
        self._repo.set_next_number(company.id, next_number)
        company.next_invoice_number = next_number
        logger.info("invoice.counter_set", next_number=next_number)
        return company

    def get_counter(self) -> int:
        company = self._repo.get_company_settings()
        if not company:
            raise CompanySettingsMissing("Company settings are not configured.")
        return company.next_invoice_number

    def get_invoice(self, invoice_id: Any) -> Invoice:
        invoice = self._repo.get_by_id(invoice_id)
        if not invoice:
            raise InvoiceNotFound(f"Invoice {invoice_id} not found.")
        return invoice

    def list_invoices(self, order_id: Optional[int] = None) -> List[Invoice]:
        return self._repo.list({"order_id": order_id} if order_id is not None else None)

    def _locked_company(self) -> CompanySettings:
        company = self._repo.get_company_settings(for_update=True)
        if not company:
            raise CompanySettingsMissing("Company settings are not configured.")
        return company
