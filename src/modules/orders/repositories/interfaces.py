"""Order repository interface.

Extends ``IRepository[Order]`` with what the order use cases need: packed
creation, row locking for status changes, the status audit trail and the
stock-application claim.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order from already packed fields."""

    @abstractmethod
    def update(self, id: int, data: Dict[str, Any]) -> Order:
        """Update order fields under a row lock."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with its courier; ``None`` when missing."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until the transaction ends."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def claim_stock_application(self, order_id: int, applied_at: datetime) -> bool:
        """Mark stock as applied unless it already is; ``True`` when this call won."""

    @abstractmethod
    def release_stock_application(self, order_id: int) -> bool:
        """Clear the stock-applied marker; ``True`` when it was set."""
