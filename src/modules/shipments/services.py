"""Shipment service layer (Use Cases).

Business rules enforced:
- The courier must be enabled and have a registered gateway.
- With ``allow_multiple_active_shipments`` off, an order may have only one
  shipment that is not delivered, returned or cancelled.
- The courier API is called outside any database transaction.  If it
  fails, nothing is written and the order is untouched.
- Once a waybill is issued the Shipment row is written first, then the
  order's courier and tracking URL, in one transaction.  A failure there
  leaves a waybill without a record; it is logged at error level for
  manual reconciliation and re-raised.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

import structlog
from django.db import transaction

from modules.core.settings_provider import OperationalSettings
from modules.orders.exceptions import OrderNotFound
from modules.shipments.exceptions import (
    ActiveShipmentExists,
    CourierNotFound,
    ShipmentNotFound,
)
from modules.shipments.gateways import ShipmentRequest, gateway_registry

if TYPE_CHECKING:
    from modules.core.settings_provider import ISettingsProvider
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.shipments.dtos import CreateShipmentDTO
    from modules.shipments.gateways import CourierGatewayRegistry
    from modules.shipments.models import Courier, Shipment
    from modules.shipments.repositories.interfaces import IShipmentRepository

logger = structlog.get_logger(__name__)


class ShipmentService:
    """Application service for shipment use-cases."""

    def __init__(
        self,
        shipment_repository: IShipmentRepository,
        order_repository: IOrderRepository,
        settings_provider: ISettingsProvider,
        gateways: Optional[CourierGatewayRegistry] = None,
        sender_defaults: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._repo = shipment_repository
        self._order_repo = order_repository
        self._settings = settings_provider
        self._gateways = gateways or gateway_registry
        self._sender = dict(sender_defaults or {})

    def create_shipment(self, order_id: int, dto: CreateShipmentDTO) -> Shipment:
        """Issue a waybill for an order and record the shipment.

        Raises:
            OrderNotFound: order does not exist.
            CourierNotFound: courier unknown, disabled or without gateway.
            ActiveShipmentExists: the single-active-shipment policy is on
                and the order already has one.
            ValueError: no recipient phone or sender name is available.
            CourierGatewayError: the courier API failed; nothing was written.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        courier = self._get_courier(dto.courier_code)
        gateway = self._gateways.get(courier.code)

        policy = OperationalSettings.from_provider(self._settings)
        if not policy.allow_multiple_active_shipments and self._repo.has_active_for_order(
            order.id
        ):
            raise ActiveShipmentExists(f"Order {order.code} already has an active shipment.")

        request = self._build_request(order, dto)
        log = logger.bind(order_id=order.id, courier=courier.code)

        issued = gateway.create_shipment(request)
        log = log.bind(waybill=issued.waybill_number)
        log.info("shipment.waybill_issued")

        try:
            with transaction.atomic():
                shipment = self._repo.create(
                    {
                        "waybill_number": issued.waybill_number,
                        "courier": courier,
                        "order_id": order.id,
                        "sender_name": request.sender_name,
                        "sender_phone": request.sender_phone,
                        "sender_city": request.sender_city,
                        "sender_address": request.sender_address,
                        "recipient_name": request.recipient_name,
                        "recipient_phone": request.recipient_phone,
                        "recipient_city": request.recipient_city,
                        "recipient_address": request.recipient_address,
                        "recipient_office_code": request.recipient_office_code,
                        "cod_amount": request.cod_amount,
                        "weight": request.weight,
                    }
                )
                self._order_repo.update(
                    order.id,
                    {
                        "courier": courier,
                        "courier_tracking_url": issued.tracking_url
                        or courier.tracking_url(issued.waybill_number),
                    },
                )
        except Exception:
            log.error("shipment.record_failed_after_waybill", exc_info=True)
            raise

        log.info("shipment.created", shipment_id=str(shipment.id))
        return shipment

    def get_label(self, shipment_id: Any) -> bytes:
        """Printable label of a shipment, fetched from its courier.

        Raises:
            ShipmentNotFound: shipment does not exist.
            CourierNotFound: the courier has no gateway any more.
            CourierGatewayError: the courier API failed.
        """
        shipment = self.get_shipment(shipment_id)
        return self._gateways.get(shipment.courier.code).get_label(shipment.waybill_number)

    def calculate_price(self, courier_code: str, params: Mapping[str, Any]) -> Decimal:
        courier = self._get_courier(courier_code)
        price = self._gateways.get(courier.code).calculate_price(params)
        logger.info("shipment.price_quoted", courier=courier.code, price=str(price))
        return price

    def update_status(self, shipment_id: Any, status: str) -> Shipment:
        self.get_shipment(shipment_id)
        return self._repo.update_status(shipment_id, status)

    def cancel_shipment(self, shipment_id: Any) -> bool:
        self.get_shipment(shipment_id)
        return self._repo.delete(shipment_id)

    def get_shipment(self, shipment_id: Any) -> Shipment:
        shipment = self._repo.get_by_id(shipment_id)
        if not shipment:
            raise ShipmentNotFound(f"Shipment {shipment_id} not found.")
        return shipment

    def list_for_order(self, order_id: int) -> List[Shipment]:
        return self._repo.list_for_order(order_id)

    def list_couriers(self) -> List[Courier]:
        return self._repo.list_couriers()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_courier(self, code: str) -> Courier:
        courier = self._repo.get_courier(code)
        if not courier:
            raise CourierNotFound(f"Courier '{code}' not found or disabled.")
        return courier

    def _build_request(self, order, dto: CreateShipmentDTO) -> ShipmentRequest:
        def sender(field: str) -> str:
            value = getattr(dto, f"sender_{field}")
            return value if value is not None else self._sender.get(field, "")

        request = ShipmentRequest(
            reference=order.code,
            sender_name=sender("name"),
            sender_phone=sender("phone"),
            sender_city=sender("city"),
            sender_address=sender("address"),
            recipient_name=dto.recipient_name or order.customer_name,
            recipient_phone=dto.recipient_phone or order.phone,
            recipient_city=dto.recipient_city,
            recipient_address=(
                order.delivery_address if dto.recipient_address is None else dto.recipient_address
            ),
            recipient_office_code=dto.recipient_office_code,
            cod_amount=order.total_price if dto.cod_amount is None else dto.cod_amount,
            weight=dto.weight,
            description=order.product_name,
        )
        if not request.recipient_phone:
            raise ValueError("Recipient phone is required to create a shipment.")
        if not request.sender_name:
            raise ValueError("Sender name is required to create a shipment.")
        return request
