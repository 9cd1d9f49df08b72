"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCreated,
    OrderStatusChanged,
    StockApplied,
    StockRestored,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=event.aggregate_id,
            status=event.status,
            source=event.source,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class StockMovementHandler:
    """Logs stock applied to or restored from an order."""

    def handle(self, event: StockApplied | StockRestored) -> None:
        logger.info(
            "order.event.stock",
            order_id=event.aggregate_id,
            event_name=event.event_name,
            movement_count=event.movement_count,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
stock_movement_handler = StockMovementHandler()
