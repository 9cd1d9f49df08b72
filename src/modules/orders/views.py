"""Order API views.

Exposes the ``OrderService`` (and the shipment and invoice services for
order-scoped actions) via HTTP using DRF ViewSets.  Domain exceptions are
caught and translated into appropriate HTTP status codes; the view never
swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet, ViewSet

from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.core.settings_provider import CachedSettingsProvider
from modules.invoices.dtos import IssueInvoiceDTO
from modules.invoices.exceptions import CompanySettingsMissing, InvoiceIssueError
from modules.invoices.serializers import InvoiceSerializer
from modules.invoices.views import build_invoice_service, settings_missing
from modules.orders.dtos import (
    BulkChangeStatusDTO,
    ChangeStatusDTO,
    CreateOrderDTO,
    UpdateOrderDTO,
)
from modules.orders.exceptions import DuplicateOrderCode, InvalidOrderStatus, OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    LineItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatusDefinitionSerializer,
    StatusChangeResultSerializer,
    StatusHistorySerializer,
)
from modules.orders.services import OrderService
from modules.products.exceptions import ConcurrentModification
from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)
from modules.shipments.dtos import CreateShipmentDTO
from modules.shipments.exceptions import (
    ActiveShipmentExists,
    CourierNotFound,
    ExternalCollaboratorError,
)
from modules.shipments.serializers import ShipmentSerializer
from modules.shipments.views import build_shipment_service, gateway_error


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        ledger=StockLedgerDjangoRepository(),
        settings_provider=CachedSettingsProvider(),
    )


def _not_found() -> Response:
    return error_response(
        "Order not found.", "not_found", status.HTTP_404_NOT_FOUND, "client_error"
    )


def _invalid(exc: Exception) -> Response:
    return error_response(str(exc), "invalid", status.HTTP_400_BAD_REQUEST, "validation_error")


def _invalid_status(exc: InvalidOrderStatus) -> Response:
    return error_response(
        str(exc), "invalid_status", status.HTTP_400_BAD_REQUEST, "validation_error", attr="status"
    )


def _concurrent(exc: ConcurrentModification) -> Response:
    return error_response(str(exc), "concurrent_modification", status.HTTP_409_CONFLICT)


class OrderViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``; all writes go through the
    service/repository layer.
    """

    filterset_class = OrderFilter
    search_fields = ["code", "customer_name", "phone", "product_name", "catalog_number"]
    ordering_fields = ["created_at", "total_price", "status", "id"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination
    queryset = Order.objects.all()
    serializer_class = OrderListSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action in {"create", "bulk_status"}:
            throttle_scope = "order_writes"
        elif self.action == "shipments" and self.request.method == "POST":
            throttle_scope = "courier_calls"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return OrderDjangoRepository().queryset()

    def _user_id(self, request: Request) -> int | None:
        user = getattr(request, "user", None)
        return user.pk if user is not None and user.is_authenticated else None

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Accepts either ``items`` (list of line items) or the packed
        ``product_name`` / ``catalog_number`` / ``quantity`` /
        ``total_price`` fields.
        """
        try:
            dto = CreateOrderDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            order = self._service.create_order(dto, user_id=self._user_id(request))
        except InvalidOrderStatus as exc:
            return _invalid_status(exc)
        except DuplicateOrderCode as exc:
            return error_response(str(exc), "duplicate_code", status.HTTP_409_CONFLICT)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        return Response(OrderSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Status cannot be edited here; use ``POST /orders/{id}/status/``.
        """
        if "status" in request.data:
            return error_response(
                "Use the /status/ endpoint to change the status.",
                "invalid",
                error_type="validation_error",
                attr="status",
            )
        try:
            dto = UpdateOrderDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            order = self._service.update_order(pk, dto)
        except OrderNotFound:
            return _not_found()
        return Response(OrderSerializer(order).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/"""
        try:
            self._service.delete_order(pk)
        except OrderNotFound:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/ ``{"status": "Shipped", "notes": ""}``

        Stock shortfalls do not fail the request; they come back in
        ``warnings``.
        """
        try:
            dto = ChangeStatusDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            result = self._service.change_status(
                pk, dto.status, notes=dto.notes, user_id=self._user_id(request)
            )
        except OrderNotFound:
            return _not_found()
        except InvalidOrderStatus as exc:
            return _invalid_status(exc)
        except ConcurrentModification as exc:
            return _concurrent(exc)
        return Response(StatusChangeResultSerializer(result).data)

    @action(detail=False, methods=["post"], url_path="bulk-status")
    def bulk_status(self, request: Request) -> Response:
        """POST /api/v1/orders/bulk-status/ ``{"order_ids": [...], "status": ...}``"""
        try:
            dto = BulkChangeStatusDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            result = self._service.bulk_change_status(
                dto.order_ids, dto.status, notes=dto.notes, user_id=self._user_id(request)
            )
        except InvalidOrderStatus as exc:
            return _invalid_status(exc)
        return Response(
            {
                "changed": StatusChangeResultSerializer(result.changed, many=True).data,
                "missing": result.missing,
                "failed": {str(key): value for key, value in result.failed.items()},
            }
        )

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        try:
            history = self._service.list_history(pk)
        except OrderNotFound:
            return _not_found()
        return Response(StatusHistorySerializer(history, many=True).data)

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="line-items")
    def line_items(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/line-items/"""
        try:
            items = self._service.get_line_items(pk)
        except OrderNotFound:
            return _not_found()
        return Response(LineItemSerializer(items, many=True).data)

    # ------------------------------------------------------------------
    # Shipments / Invoices
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get", "post"])
    def shipments(self, request: Request, pk: str | None = None) -> Response:
        """GET/POST /api/v1/orders/{pk}/shipments/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()

        shipment_service = build_shipment_service()
        if request.method == "GET":
            shipments = shipment_service.list_for_order(order.id)
            return Response(ShipmentSerializer(shipments, many=True).data)

        try:
            dto = CreateShipmentDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            shipment = shipment_service.create_shipment(order.id, dto)
        except CourierNotFound as exc:
            return error_response(
                str(exc), "courier_not_found", status.HTTP_404_NOT_FOUND, "client_error"
            )
        except ActiveShipmentExists as exc:
            return error_response(str(exc), "active_shipment_exists", status.HTTP_409_CONFLICT)
        except ExternalCollaboratorError as exc:
            return gateway_error(exc)
        except ValueError as exc:
            return _invalid(exc)
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get", "post"])
    def invoices(self, request: Request, pk: str | None = None) -> Response:
        """GET/POST /api/v1/orders/{pk}/invoices/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()

        invoice_service = build_invoice_service()
        if request.method == "GET":
            invoices = invoice_service.list_invoices(order.id)
            return Response(InvoiceSerializer(invoices, many=True).data)

        try:
            dto = IssueInvoiceDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            invoice = invoice_service.issue_invoice(order.id, dto)
        except CompanySettingsMissing as exc:
            return settings_missing(exc)
        except InvoiceIssueError as exc:
            return error_response(str(exc), "invoice_issue_error", status.HTTP_409_CONFLICT)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class OrderStatusViewSet(ViewSet):
    """GET /api/v1/order-statuses/ : the status catalog."""

    def list(self, request: Request) -> Response:
        statuses = build_order_service().list_statuses()
        return Response(OrderStatusDefinitionSerializer(statuses, many=True).data)
