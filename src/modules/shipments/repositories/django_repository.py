"""Django ORM implementation of the Shipment repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.shipments.models import (
    CLOSED_SHIPMENT_STATUSES,
    Courier,
    Shipment,
    ShipmentStatus,
)
from modules.shipments.repositories.interfaces import IShipmentRepository

logger = structlog.get_logger(__name__)


class ShipmentDjangoRepository(IShipmentRepository):
    """Concrete Shipment repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Shipment]:
        """Returns ``None`` for non-existent or invalid IDs."""
        try:
            return Shipment.objects.select_related("courier").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Shipment]:
        queryset = Shipment.objects.select_related("courier")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Shipment) -> Shipment:
        entity.save()
        return entity

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Shipment:
        shipment = Shipment(**data)
        shipment.save()
        logger.info(
            "shipment.saved",
            shipment_id=str(shipment.id),
            waybill=shipment.waybill_number,
        )
        return shipment

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        """Shipments are never removed: deleting cancels an active shipment."""
        updated = (
            Shipment.objects.filter(id=id)
            .exclude(status__in=CLOSED_SHIPMENT_STATUSES)
            .update(status=ShipmentStatus.CANCELLED)
        )
        if updated:
            logger.info("shipment.cancelled", shipment_id=str(id))
        return bool(updated)

    @transaction.atomic
    def update_status(self, id: Any, status: str) -> Shipment:
        shipment = Shipment.objects.select_for_update().filter(id=id).first()
        if not shipment:
            raise Shipment.DoesNotExist(f"Shipment {id} not found.")
        shipment.status = status
        shipment.save(update_fields=["status"])
        logger.info("shipment.status_updated", shipment_id=str(id), status=status)
        return shipment

    def get_courier(self, code: str) -> Optional[Courier]:
        return Courier.objects.filter(code=code, is_enabled=True).first()

    def list_couriers(self) -> List[Courier]:
        return list(Courier.objects.filter(is_enabled=True))

    def list_for_order(self, order_id: int) -> List[Shipment]:
        return list(Shipment.objects.select_related("courier").filter(order_id=order_id))

    def has_active_for_order(self, order_id: int) -> bool:
        return (
            Shipment.objects.filter(order_id=order_id)
            .exclude(status__in=CLOSED_SHIPMENT_STATUSES)
            .exists()
        )
