"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    status: str = ""
    source: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every status label change, including re-entering the same status."""

    old_status: Optional[str] = None
    new_status: str = ""


@dataclass(frozen=True)
class StockApplied(DomainEvent):
    """Raised when an order's stock was deducted."""

    movement_count: int = 0


@dataclass(frozen=True)
class StockRestored(DomainEvent):
    """Raised when stock deducted for an order was returned."""

    movement_count: int = 0
