"""Shipment repository interface.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.shipments.models import Courier, Shipment


class IShipmentRepository(IRepository["Shipment"]):
    """Repository contract for shipments and the courier catalog."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Shipment:
        """Persist a shipment whose waybill was already issued."""

    @abstractmethod
    def get_courier(self, code: str) -> Optional[Courier]:
        """Retrieve an enabled courier by code."""

    @abstractmethod
    def list_couriers(self) -> List[Courier]:
        """Every enabled courier."""

    @abstractmethod
    def list_for_order(self, order_id: int) -> List[Shipment]:
        """Shipments of an order, newest first."""

    @abstractmethod
    def has_active_for_order(self, order_id: int) -> bool:
        """Whether the order has a shipment that is not closed."""

    @abstractmethod
    def update_status(self, id: Any, status: str) -> Shipment:
        """Change a shipment's status."""
