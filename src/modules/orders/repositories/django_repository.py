"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Status
changes lock the order row with ``select_for_update()``; the stock marker
is claimed with a conditional ``UPDATE ... WHERE stock_applied_at IS NULL``
so concurrent requests cannot both deduct stock.

Domain events collected on the aggregate are published on the in-process
bus after the transaction commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

_IMMUTABLE_FIELDS = {"id", "code", "stock_applied_at", "reserved_items", "created_at"}


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create / Update
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order.

        ``data`` holds model fields; line items must already be packed into
        ``product_name``, ``catalog_number``, ``quantity`` and
        ``total_price``.
        """
        order = Order(**data)
        order.save()
        logger.info("order.created", order_id=order.id, code=order.code)
        return order

    @transaction.atomic
    def update(self, id: int, data: Dict[str, Any]) -> Order:
        """Update order fields using ``select_for_update`` for safety."""
        forbidden = _IMMUTABLE_FIELDS.intersection(data)
        if forbidden:
            raise ValueError(f"Fields cannot be updated directly: {sorted(forbidden)}")
        order = self.get_for_update(id)
        if not order:
            raise Order.DoesNotExist(f"Order {id} not found.")

        for field, value in data.items():
            setattr(order, field, value)

        order.save()
        logger.info("order.updated", order_id=order.id, fields=sorted(data))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with its courier.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.select_related("courier").filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional Django ORM look-ups.

        Examples of valid filters::

            {"status": "Shipped"}
            {"id__in": [1, 2, 3]}
        """
        queryset = self.queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def queryset(self) -> QuerySet:
        """Unevaluated queryset for the API's filter/ordering backends."""
        return Order.objects.select_related("courier")

    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must run inside a transaction.  Returns ``None`` for non-existent
        or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and publish its pending events after commit."""
        entity.save()

        events = entity.pull_domain_events()
        if events:
            transaction.on_commit(lambda: event_bus.publish_all(events))

        logger.info("order.saved", order_id=entity.id, event_count=len(events))
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        """Hard-delete an order; stock movements keep a null order reference."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.deleted", order_id=id)
        return True

    # ------------------------------------------------------------------
    # Status history and stock marker
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user_id=user_id,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=status,
        )
        return history

    def list_history(self, order_id: int) -> List[OrderStatusHistory]:
        return list(OrderStatusHistory.objects.filter(order_id=order_id))

    def claim_stock_application(self, order_id: int, applied_at: datetime) -> bool:
        updated = Order.objects.filter(id=order_id, stock_applied_at__isnull=True).update(
            stock_applied_at=applied_at
        )
        return updated == 1

    def release_stock_application(self, order_id: int) -> bool:
        updated = Order.objects.filter(id=order_id, stock_applied_at__isnull=False).update(
            stock_applied_at=None
        )
        return updated == 1
