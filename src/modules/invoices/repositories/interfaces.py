"""Invoice repository interface.

Owns the invoice counter: callers lock the company settings row, read the
next number, create the invoice and advance the counter within one
transaction.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.invoices.models import CompanySettings, Invoice


class IInvoiceRepository(IRepository["Invoice"]):
    @abstractmethod
    def get_company_settings(self, for_update: bool = False) -> Optional[CompanySettings]:
        """The single company settings row; locked when ``for_update``."""

    @abstractmethod
    def set_next_number(self, company_id: Any, next_number: int) -> None:
        """Store the counter value the next invoice will take."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Invoice:
        """Persist a new invoice."""

    @abstractmethod
    def number_exists(self, invoice_number: int) -> bool:
        """Whether an invoice already carries this number."""

    @abstractmethod
    def last_number(self) -> Optional[int]:
        """Highest invoice number issued so far."""
