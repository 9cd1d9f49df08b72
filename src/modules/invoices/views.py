"""Invoice API views.

Invoices are issued from ``/orders/{id}/invoices/``; this viewset lists
them and exposes the counter.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.core.exceptions import error_response
from modules.invoices.dtos import SetInvoiceCounterDTO
from modules.invoices.exceptions import CompanySettingsMissing, InvoiceNotFound
from modules.invoices.repositories.django_repository import InvoiceDjangoRepository
from modules.invoices.serializers import InvoiceSerializer
from modules.invoices.services import InvoiceService
from modules.orders.repositories.django_repository import OrderDjangoRepository


def build_invoice_service() -> InvoiceService:
    return InvoiceService(
        invoice_repository=InvoiceDjangoRepository(),
        order_repository=OrderDjangoRepository(),
    )


def settings_missing(exc: CompanySettingsMissing) -> Response:
    return error_response(str(exc), "company_settings_missing", status.HTTP_409_CONFLICT)


class InvoiceViewSet(ViewSet):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_invoice_service()

    def list(self, request: Request) -> Response:
        """GET /api/v1/invoices/?order=<id>"""
        order_id = request.query_params.get("order")
        if order_id is not None and not order_id.isdigit():
            return error_response(
                "Order id must be numeric.", "invalid", error_type="validation_error", attr="order"
            )
        invoices = self._service.list_invoices(int(order_id) if order_id else None)
        return Response(InvoiceSerializer(invoices, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/invoices/{pk}/"""
        try:
            invoice = self._service.get_invoice(pk)
        except InvoiceNotFound as exc:
            return error_response(
                str(exc), "not_found", status.HTTP_404_NOT_FOUND, "client_error"
            )
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=False, methods=["get", "put"])
    def counter(self, request: Request) -> Response:
        """GET/PUT /api/v1/invoices/counter/ ``{"next_invoice_number": 42}``"""
        try:
            if request.method == "GET":
                return Response({"next_invoice_number": self._service.get_counter()})
            try:
                dto = SetInvoiceCounterDTO(**request.data)
            except (PydanticValidationError, TypeError, ValueError) as exc:
                return error_response(str(exc), "invalid", error_type="validation_error")
            company = self._service.set_next_invoice_number(dto.next_invoice_number)
        except CompanySettingsMissing as exc:
            return settings_missing(exc)
        return Response({"next_invoice_number": company.next_invoice_number})
