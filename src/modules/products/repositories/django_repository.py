"""Django ORM implementations of the inventory repositories.

Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising; the Service Layer decides how to translate a missing
entity.  Stock writes never read-modify-write in Python: they are a single
conditional ``UPDATE ... SET current_stock = current_stock + delta,
version = version + 1 WHERE id = ? AND version = ?``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.db.models.functions import Greatest

from modules.products.models import BundleComponent, Product, StockMovement
from modules.products.repositories.interfaces import IProductRepository, IStockLedger

logger = structlog.get_logger(__name__)

_STOCK_FIELDS = {"current_stock", "reserved_stock", "version"}


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"name__icontains": "jacket"}
        """
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def queryset(self) -> QuerySet:
        """Unevaluated queryset for the API's filter/ordering backends."""
        return Product.objects.all()

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    @transaction.atomic
    def update(self, id: UUID, data: Dict[str, Any]) -> Product:
        """Apply a partial update; stock fields are rejected (use the ledger)."""
        forbidden = _STOCK_FIELDS.intersection(data)
        if forbidden:
            raise ValueError(f"Stock fields cannot be updated directly: {sorted(forbidden)}")
        product = Product.objects.select_for_update().filter(id=id).first()
        if not product:
            raise Product.DoesNotExist(f"Product {id} not found.")
        for field, value in data.items():
            setattr(product, field, value)
        product.save()
        logger.info("product.updated", product_id=str(id), fields=sorted(data))
        return product

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        """Deactivate a product; rows are kept for the ledger and order history."""
        updated = Product.objects.filter(id=id, is_active=True).update(is_active=False)
        if updated:
            logger.info("product.deactivated", product_id=str(id))
        return bool(updated)

    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU (case-insensitive via upper normalisation)."""
        return Product.objects.filter(sku=sku.strip().upper()).first()

    def get_by_external_id(self, external_id: str) -> Optional[Product]:
        return Product.objects.filter(external_id=external_id).first()

    # ------------------------------------------------------------------
    # Bundles
    # ------------------------------------------------------------------

    def get_components(self, product_id: UUID) -> List[BundleComponent]:
        return list(
            BundleComponent.objects.select_related("component")
            .filter(parent_id=product_id)
            .order_by("created_at", "id")
        )

    @transaction.atomic
    def replace_components(
        self, product_id: UUID, components: Sequence[Tuple[UUID, int]]
    ) -> List[BundleComponent]:
        BundleComponent.objects.filter(parent_id=product_id).delete()
        # one row per insert keeps created_at ordered as configured
        for component_id, quantity in components:
            BundleComponent.objects.create(
                parent_id=product_id,
                component_id=component_id,
                quantity=quantity,
            )
        logger.info(
            "product.bundle_replaced",
            product_id=str(product_id),
            component_count=len(components),
        )
        return self.get_components(product_id)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def apply_stock_delta(
        self, product_id: UUID, delta: int, expected_version: int
    ) -> bool:
        queryset = Product.objects.filter(id=product_id, version=expected_version)
        if delta < 0:
            queryset = queryset.filter(current_stock__gte=-delta)
        updated = queryset.update(
            current_stock=F("current_stock") + delta,
            version=F("version") + 1,
        )
        return updated == 1

    def adjust_reserved(self, product_id: UUID, delta: int) -> None:
        Product.objects.filter(id=product_id).update(
            reserved_stock=Greatest(F("reserved_stock") + delta, 0)
        )


class StockLedgerDjangoRepository(IStockLedger):
    """Stock movement ledger backed by the ``stock_movements`` table."""

    def append(self, movement: Dict[str, Any]) -> StockMovement:
        record = StockMovement(**movement)
        record.save()
        return record

    def list_for_product(self, product_id: UUID) -> List[StockMovement]:
        return list(StockMovement.objects.filter(product_id=product_id))

    def list_for_order(
        self, order_id: int, movement_type: Optional[str] = None
    ) -> List[StockMovement]:
        queryset = StockMovement.objects.filter(order_id=order_id)
        if movement_type is not None:
            queryset = queryset.filter(movement_type=movement_type)
        return list(queryset.order_by("created_at"))
