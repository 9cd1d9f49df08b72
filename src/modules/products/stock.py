"""Bundle-aware stock resolver.

Answers "how many units of this product can be sold?" and "which stock
movements does selling (or returning) them produce?" for plain and bundle
products, and commits those movements to the ledger.

Availability and reservation are pure computations over a fresh snapshot
read from the product repository; nothing is written until
``apply_movements``.  Every pending movement carries the product ``version``
it was computed from, so a concurrent stock change between the read and the
write is detected instead of silently overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction

from modules.products.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    ProductNotFound,
    UnconfiguredBundle,
)
from modules.products.models import MovementType, signed_quantity

if TYPE_CHECKING:
    from modules.products.models import BundleComponent, Product, StockMovement
    from modules.products.repositories.interfaces import (
        IProductRepository,
        IStockLedger,
    )

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Availability:
    product_id: UUID
    available: int
    is_bundle: bool
    limiting_component_id: Optional[UUID] = None
    unconfigured: bool = False


@dataclass(frozen=True)
class PendingMovement:
    """A computed, not yet committed, stock movement."""

    product_id: UUID
    movement_type: str
    quantity: int
    stock_before: int
    stock_after: int
    expected_version: int
    unit_price: Decimal = Decimal("0.00")
    order_id: Optional[int] = None
    reason: str = ""

    @property
    def delta(self) -> int:
        return signed_quantity(self.quantity, self.movement_type)


class BundleStockResolver:
    """Availability, reservation and ledger application for products and bundles."""

    def __init__(
        self,
        product_repository: IProductRepository,
        ledger: IStockLedger,
    ) -> None:
        self._products = product_repository
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def get_availability(self, product_id: UUID) -> Availability:
        """Units of ``product_id`` that can be sold right now.

        For a bundle this is the minimum over its components of
        ``component.current_stock // required_quantity``; a bundle with no
        components is never available.  Inactive components still count.
        """
        return self._availability(self._get_product(product_id))

    def _availability(self, product: Product) -> Availability:
        if not product.is_bundle:
            return Availability(
                product_id=product.id,
                available=max(product.current_stock, 0),
                is_bundle=False,
            )

        return self._bundle_availability(
            product, self._products.get_components(product.id)
        )

    def _bundle_availability(
        self, product: Product, components: List[BundleComponent]
    ) -> Availability:
        if not components:
            logger.warning("stock.unconfigured_bundle", product_id=str(product.id))
            return Availability(
                product_id=product.id,
                available=0,
                is_bundle=True,
                unconfigured=True,
            )

        available: Optional[int] = None
        limiting: Optional[UUID] = None
        for link in components:
            units = max(link.component.current_stock, 0) // link.quantity
            if available is None or units < available:
                available, limiting = units, link.component_id
        return Availability(
            product_id=product.id,
            available=available or 0,
            is_bundle=True,
            limiting_component_id=limiting,
        )

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def reserve_for_sale(
        self,
        product_id: UUID,
        quantity: int,
        order_id: Optional[int] = None,
        reason: str = "",
    ) -> List[PendingMovement]:
        """Movements that selling ``quantity`` units of one product would produce."""
        return self.reserve_for_lines([(product_id, quantity)], order_id, reason)

    def reserve_for_lines(
        self,
        lines: Iterable[Tuple[UUID, int]],
        order_id: Optional[int] = None,
        reason: str = "",
    ) -> List[PendingMovement]:
        """Movements for selling several ``(product_id, quantity)`` lines at once.

        Demand is summed per affected product so a component shared by two
        lines yields one movement.  Bundles never get a movement of their
        own.  Raises ``InsufficientStock`` (or ``UnconfiguredBundle``)
        without producing anything when any product would go negative.
        """
        demand: Dict[UUID, Tuple[Product, int]] = {}

        for product_id, quantity in lines:
            if quantity < 0:
                raise ValueError(f"Quantity must not be negative, got {quantity}.")
            if quantity == 0:
                continue

            product = self._get_product(product_id)
            for affected, needed in self._expand(product, quantity):
                snapshot, total = demand.get(affected.id, (affected, 0))
                demand[affected.id] = (snapshot, total + needed)

        for snapshot, total in demand.values():
            if total > snapshot.current_stock:
                raise InsufficientStock(snapshot.id, total, snapshot.current_stock)

        return [
            PendingMovement(
                product_id=snapshot.id,
                movement_type=MovementType.OUT,
                quantity=total,
                stock_before=snapshot.current_stock,
                stock_after=snapshot.current_stock - total,
                expected_version=snapshot.version,
                unit_price=snapshot.sale_price,
                order_id=order_id,
                reason=reason,
            )
            for snapshot, total in demand.values()
        ]

    def _expand(self, product: Product, quantity: int) -> List[Tuple[Product, int]]:
        if not product.is_bundle:
            if quantity > product.current_stock:
                raise InsufficientStock(product.id, quantity, max(product.current_stock, 0))
            return [(product, quantity)]

        components = self._products.get_components(product.id)
        availability = self._bundle_availability(product, components)
        if availability.unconfigured:
            raise UnconfiguredBundle(product.id, quantity)
        if quantity > availability.available:
            raise InsufficientStock(
                product.id,
                quantity,
                availability.available,
                availability.limiting_component_id,
            )
        return [(link.component, quantity * link.quantity) for link in components]

    def release_for_order(self, order_id: int, reason: str = "") -> List[PendingMovement]:
        """``return`` movements undoing the stock an order still holds.

        Nets ``out`` against earlier ``return`` movements of the same order,
        so an order shipped and returned twice is only restored once per
        shipment.
        """
        outstanding: Dict[UUID, int] = {}
        for movement in self._ledger.list_for_order(order_id):
            if movement.movement_type == MovementType.OUT:
                change = movement.quantity
            elif movement.movement_type == MovementType.RETURN:
                change = -movement.quantity
            else:
                continue
            outstanding[movement.product_id] = outstanding.get(movement.product_id, 0) + change

        pending = []
        for product_id, quantity in outstanding.items():
            if quantity <= 0:
                continue
            product = self._get_product(product_id)
            pending.append(
                PendingMovement(
                    product_id=product.id,
                    movement_type=MovementType.RETURN,
                    quantity=quantity,
                    stock_before=product.current_stock,
                    stock_after=product.current_stock + quantity,
                    expected_version=product.version,
                    unit_price=product.sale_price,
                    order_id=order_id,
                    reason=reason,
                )
            )
        return pending

    # ------------------------------------------------------------------
    # Held stock
    # ------------------------------------------------------------------

    def reservation_for_lines(self, lines: Iterable[Tuple[UUID, int]]) -> Dict[UUID, int]:
        """Units each plain product would hold for ``(product_id, quantity)`` lines.

        Bundles expand to their components.  Unlike ``reserve_for_lines``
        nothing is checked against current stock; an unconfigured bundle
        holds nothing.
        """
        held: Dict[UUID, int] = {}
        for product_id, quantity in lines:
            if quantity <= 0:
                continue
            product = self._get_product(product_id)
            if product.is_bundle:
                affected = [
                    (link.component_id, quantity * link.quantity)
                    for link in self._products.get_components(product.id)
                ]
            else:
                affected = [(product.id, quantity)]
            for affected_id, units in affected:
                held[affected_id] = held.get(affected_id, 0) + units
        return held

    @transaction.atomic
    def hold(self, quantities: Dict[UUID, int]) -> None:
        for product_id, units in quantities.items():
            self._products.adjust_reserved(product_id, units)

    @transaction.atomic
    def release_hold(self, quantities: Dict[UUID, int]) -> None:
        for product_id, units in quantities.items():
            self._products.adjust_reserved(product_id, -units)

    def plan_adjustment(
        self,
        product_id: UUID,
        movement_type: str,
        quantity: int,
        reason: str = "",
        unit_price: Optional[Decimal] = None,
    ) -> PendingMovement:
        """A single manual movement (delivery, write-off, correction)."""
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}.")
        product = self._get_product(product_id)
        delta = signed_quantity(quantity, movement_type)
        if product.current_stock + delta < 0:
            raise InsufficientStock(product.id, quantity, max(product.current_stock, 0))
        return PendingMovement(
            product_id=product.id,
            movement_type=movement_type,
            quantity=quantity,
            stock_before=product.current_stock,
            stock_after=product.current_stock + delta,
            expected_version=product.version,
            unit_price=product.purchase_price if unit_price is None else unit_price,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    @transaction.atomic
    def apply_movements(self, movements: Iterable[PendingMovement]) -> List[StockMovement]:
        """Commit movements all-or-nothing.

        Each product write is conditional on the version the movement was
        computed from; any mismatch raises ``ConcurrentModification`` and
        rolls back every write of the batch.
        """
        recorded: List[StockMovement] = []
        for movement in movements:
            if not self._products.apply_stock_delta(
                movement.product_id, movement.delta, movement.expected_version
            ):
                logger.warning(
                    "stock.concurrent_modification",
                    product_id=str(movement.product_id),
                    expected_version=movement.expected_version,
                )
                raise ConcurrentModification(
                    movement.product_id, movement.expected_version
                )
            recorded.append(
                self._ledger.append(
                    {
                        "product_id": movement.product_id,
                        "movement_type": movement.movement_type,
                        "quantity": movement.quantity,
                        "stock_before": movement.stock_before,
                        "stock_after": movement.stock_after,
                        "unit_price": movement.unit_price,
                        "order_id": movement.order_id,
                        "reason": movement.reason,
                    }
                )
            )

        if recorded:
            logger.info(
                "stock.movements_applied",
                count=len(recorded),
                order_id=recorded[0].order_id,
            )
        return recorded

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_product(self, product_id: UUID) -> Product:
        product = self._products.get_by_id(product_id)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product
