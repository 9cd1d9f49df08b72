"""Inventory API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
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
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.core.settings_provider import CachedSettingsProvider
from modules.products.dtos import (
    BundleComponentDTO,
    ConfigureBundleDTO,
    CreateProductDTO,
    StockAdjustmentDTO,
    UpdateProductDTO,
)
from modules.products.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    InvalidBundleConfiguration,
    NestedBundleNotAllowed,
    ProductAlreadyExists,
    ProductNotFound,
)
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)
from modules.products.serializers import (
    AvailabilitySerializer,
    BundleComponentSerializer,
    ProductSerializer,
    StockMovementSerializer,
)
from modules.products.services import ProductService


def _not_found() -> Response:
    return error_response(
        "Product not found.", "not_found", status.HTTP_404_NOT_FOUND, "client_error"
    )


def _invalid(exc: Exception) -> Response:
    return error_response(str(exc), "invalid", status.HTTP_400_BAD_REQUEST, "validation_error")


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for products, bundles and manual stock movements.

    Does **not** extend ``ModelViewSet``; all writes go through the
    service/repository layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "sku"]
    ordering_fields = ["name", "sku", "current_stock", "sale_price", "created_at"]
    ordering = ["name"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(
            repository=ProductDjangoRepository(),
            ledger=StockLedgerDjangoRepository(),
            settings_provider=CachedSettingsProvider(),
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return ProductDjangoRepository().queryset()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    # ------------------------------------------------------------------
    # Create / Update / Deactivate
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        try:
            dto = CreateProductDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            product = self._service.create_product(dto)
        except ProductAlreadyExists as exc:
            return error_response(str(exc), "duplicate_sku", status.HTTP_409_CONFLICT)

        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/

        Stock cannot be edited here; use ``adjust-stock``.
        """
        try:
            dto = UpdateProductDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/ (deactivation)"""
        try:
            self._service.deactivate_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"])
    def availability(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/availability/"""
        try:
            availability = self._service.get_availability(pk)
        except ProductNotFound:
            return _not_found()
        return Response(AvailabilitySerializer(availability).data)

    @action(detail=True, methods=["post"], url_path="adjust-stock")
    def adjust_stock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/adjust-stock/"""
        try:
            dto = StockAdjustmentDTO(**request.data)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            movement = self._service.adjust_stock(pk, dto)
        except ProductNotFound:
            return _not_found()
        except InsufficientStock as exc:
            return error_response(
                str(exc),
                "insufficient_stock",
                status.HTTP_409_CONFLICT,
                available=exc.available,
            )
        except ConcurrentModification as exc:
            return error_response(str(exc), "concurrent_modification", status.HTTP_409_CONFLICT)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def movements(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/movements/"""
        try:
            movements = self._service.list_movements(pk)
        except ProductNotFound:
            return _not_found()
        return Response(StockMovementSerializer(movements, many=True).data)

    # ------------------------------------------------------------------
    # Bundles
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get", "put"])
    def bundle(self, request: Request, pk: str | None = None) -> Response:
        """GET/PUT /api/v1/products/{pk}/bundle/

        PUT replaces the component list:
        ``{"components": [{"component_id": ..., "quantity": 2}]}``.
        """
        if request.method == "GET":
            try:
                components = self._service.get_components(pk)
            except ProductNotFound:
                return _not_found()
            return Response(BundleComponentSerializer(components, many=True).data)

        try:
            dto = ConfigureBundleDTO(
                components=[
                    BundleComponentDTO(**item)
                    for item in request.data.get("components", [])
                ]
            )
        except (PydanticValidationError, TypeError, ValueError) as exc:
            return _invalid(exc)

        try:
            components = self._service.configure_bundle(pk, dto)
        except ProductNotFound as exc:
            return error_response(
                str(exc), "not_found", status.HTTP_404_NOT_FOUND, "client_error"
            )
        except (InvalidBundleConfiguration, NestedBundleNotAllowed) as exc:
            return error_response(str(exc), "invalid_bundle")
        return Response(BundleComponentSerializer(components, many=True).data)
