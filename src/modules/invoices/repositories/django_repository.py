"""Django ORM implementation of the Invoice repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max

from modules.invoices.models import CompanySettings, Invoice
from modules.invoices.repositories.interfaces import IInvoiceRepository

logger = structlog.get_logger(__name__)


class InvoiceDjangoRepository(IInvoiceRepository):
    """Concrete Invoice repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Invoice]:
        try:
            return Invoice.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Invoice]:
        queryset = Invoice.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Invoice) -> Invoice:
        entity.save()
        return entity

    def delete(self, id: Any) -> bool:
        raise ValidationError("Invoices cannot be deleted.")

    def get_company_settings(self, for_update: bool = False) -> Optional[CompanySettings]:
        queryset = CompanySettings.objects.order_by("created_at")
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.first()

    def set_next_number(self, company_id: Any, next_number: int) -> None:
        CompanySettings.objects.filter(id=company_id).update(next_invoice_number=next_number)

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Invoice:
        invoice = Invoice(**data)
        invoice.save()
        return invoice

    def number_exists(self, invoice_number: int) -> bool:
        return Invoice.objects.filter(invoice_number=invoice_number).exists()

    def last_number(self) -> Optional[int]:
        return Invoice.objects.aggregate(last=Max("invoice_number"))["last"]
