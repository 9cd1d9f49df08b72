"""Shipment and courier API views.

Courier API failures map to 502; the error body names the courier.
"""

from __future__ import annotations

from django.conf import settings
from django.http import HttpResponse
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.core.exceptions import error_response
from modules.core.settings_provider import CachedSettingsProvider
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.shipments.dtos import PriceQuoteDTO
from modules.shipments.exceptions import (
    CourierNotFound,
    ExternalCollaboratorError,
    ShipmentNotFound,
)
from modules.shipments.models import ShipmentStatus
from modules.shipments.repositories.django_repository import ShipmentDjangoRepository
from modules.shipments.serializers import CourierSerializer, ShipmentSerializer
from modules.shipments.services import ShipmentService


def build_shipment_service() -> ShipmentService:
    return ShipmentService(
        shipment_repository=ShipmentDjangoRepository(),
        order_repository=OrderDjangoRepository(),
        settings_provider=CachedSettingsProvider(),
        sender_defaults=settings.SHIPMENT_SENDER,
    )


def gateway_error(exc: ExternalCollaboratorError) -> Response:
    return error_response(
        str(exc), "courier_error", status.HTTP_502_BAD_GATEWAY, "server_error"
    )


def _not_found(exc: Exception) -> Response:
    return error_response(str(exc), "not_found", status.HTTP_404_NOT_FOUND, "client_error")


class ShipmentViewSet(ViewSet):
    """Shipments are created from ``/orders/{id}/shipments/``."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_shipment_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "courier_calls" if self.action == "label" else None
        return super().get_throttles()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/shipments/{pk}/"""
        try:
            shipment = self._service.get_shipment(pk)
        except ShipmentNotFound as exc:
            return _not_found(exc)
        return Response(ShipmentSerializer(shipment).data)

    @action(detail=True, methods=["get"])
    def label(self, request: Request, pk: str | None = None):
        """GET /api/v1/shipments/{pk}/label/ (PDF)"""
        try:
            content = self._service.get_label(pk)
        except (ShipmentNotFound, CourierNotFound) as exc:
            return _not_found(exc)
        except ExternalCollaboratorError as exc:
            return gateway_error(exc)
        response = HttpResponse(content, content_type="application/pdf")
        response["Content-Disposition"] = f'inline; filename="label-{pk}.pdf"'
        return response

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/shipments/{pk}/status/ ``{"status": "in_transit"}``"""
        new_status = request.data.get("status")
        if new_status not in ShipmentStatus.values:
            return error_response(
                f"Status must be one of {ShipmentStatus.values}.",
                "invalid",
                error_type="validation_error",
                attr="status",
            )
        try:
            shipment = self._service.update_status(pk, new_status)
        except ShipmentNotFound as exc:
            return _not_found(exc)
        return Response(ShipmentSerializer(shipment).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/shipments/{pk}/cancel/"""
        try:
            self._service.cancel_shipment(pk)
            shipment = self._service.get_shipment(pk)
        except ShipmentNotFound as exc:
            return _not_found(exc)
        return Response(ShipmentSerializer(shipment).data)


class CourierViewSet(ViewSet):
    lookup_field = "code"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_shipment_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "courier_calls" if self.action == "price" else None
        return super().get_throttles()

    def list(self, request: Request) -> Response:
        """GET /api/v1/couriers/"""
        return Response(CourierSerializer(self._service.list_couriers(), many=True).data)

    @action(detail=True, methods=["post"])
    def price(self, request: Request, code: str | None = None) -> Response:
        """POST /api/v1/couriers/{code}/price/"""
        try:
            dto = PriceQuoteDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return error_response(str(exc), "invalid", error_type="validation_error")
        try:
            price = self._service.calculate_price(code, dto.params())
        except CourierNotFound as exc:
            return _not_found(exc)
        except ExternalCollaboratorError as exc:
            return gateway_error(exc)
        return Response({"courier_code": code, "price": str(price)})
