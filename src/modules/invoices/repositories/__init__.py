"""Invoice repositories package."""

from modules.invoices.repositories.django_repository import InvoiceDjangoRepository
from modules.invoices.repositories.interfaces import IInvoiceRepository

__all__ = ["IInvoiceRepository", "InvoiceDjangoRepository"]
