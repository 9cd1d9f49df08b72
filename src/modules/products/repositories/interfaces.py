"""Inventory repository interfaces.

``IProductRepository`` extends ``IRepository[Product]`` with the look-ups
the stock resolver and catalog sync need (SKU, external id, bundle
components) and the version-checked stock write.  ``IStockLedger`` is the
append-only movement ledger.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import BundleComponent, Product, StockMovement


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def get_by_external_id(self, external_id: str) -> Optional[Product]:
        """Retrieve a product by its external catalog identifier."""

    @abstractmethod
    def update(self, id: UUID, data: Dict[str, Any]) -> Product:
        """Apply a partial update (non-stock fields)."""

    @abstractmethod
    def get_components(self, product_id: UUID) -> List[BundleComponent]:
        """Return a bundle's components (with ``component`` loaded) in configuration order."""

    @abstractmethod
    def replace_components(
        self, product_id: UUID, components: Sequence[Tuple[UUID, int]]
    ) -> List[BundleComponent]:
        """Replace a bundle's components wholesale with ``(component_id, quantity)`` pairs."""

    @abstractmethod
    def apply_stock_delta(
        self, product_id: UUID, delta: int, expected_version: int
    ) -> bool:
        """Atomically add ``delta`` to ``current_stock`` if ``version`` still matches.

        Decrements also require the resulting stock to stay non-negative.
        Returns ``False`` when no row was updated.
        """

    @abstractmethod
    def adjust_reserved(self, product_id: UUID, delta: int) -> None:
        """Add ``delta`` to ``reserved_stock``, clamping the result at zero."""


class IStockLedger(ABC):
    """Append-only stock movement ledger."""

    @abstractmethod
    def append(self, movement: Dict[str, Any]) -> StockMovement:
        """Record a movement; the row is immutable afterwards."""

    @abstractmethod
    def list_for_product(self, product_id: UUID) -> List[StockMovement]:
        """Return a product's movements, newest first."""

    @abstractmethod
    def list_for_order(
        self, order_id: int, movement_type: Optional[str] = None
    ) -> List[StockMovement]:
        """Return the movements recorded for an order, optionally of one type."""
