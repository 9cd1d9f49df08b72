"""Order service layer (Use Cases).

Orchestrates order creation, editing and status changes.  All write
operations are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- Status labels must exist in the status catalog (or be leasing statuses);
  any status may follow any other.
- Every status change is recorded in the order's history.
- Entering the configured deduction status with auto-deduct enabled
  deducts the order's stock exactly once.  A shortfall never blocks the
  status change: it is reported as a warning and no stock moves.
- Entering the configured restore status returns stock that was deducted
  and clears the marker, so a later deduction can happen again.
- Entering the configured reservation status (auto-deduct enabled, stock
  not yet deducted) holds the order's units in ``Product.reserved_stock``.
  The hold never blocks and is released when the order reaches the
  deduction or restore status, or is deleted.
- Line items are matched to products by catalog number (product SKU).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.settings_provider import OperationalSettings
from modules.orders.codec import PackedLineItems, decode_line_items, encode_line_items
from modules.orders.events import (
    OrderCreated,
    OrderStatusChanged,
    StockApplied,
    StockRestored,
)
from modules.orders.exceptions import DuplicateOrderCode, OrderNotFound
from modules.orders.statuses import StatusCatalog
from modules.products.exceptions import ConcurrentModification, InsufficientStock
from modules.products.stock import BundleStockResolver

if TYPE_CHECKING:
    from modules.core.settings_provider import ISettingsProvider
    from modules.orders.codec import LineItem
    from modules.orders.dtos import CreateOrderDTO, LineItemDTO, UpdateOrderDTO
    from modules.orders.models import Order, OrderStatusHistory
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import (
        IProductRepository,
        IStockLedger,
    )

logger = structlog.get_logger(__name__)


@dataclass
class StatusChangeResult:
    order: Order
    old_status: Optional[str]
    warnings: List[str] = field(default_factory=list)
    stock_applied: bool = False
    stock_restored: bool = False
    stock_reserved: bool = False
    reservation_released: bool = False


@dataclass
class BulkStatusChangeResult:
    changed: List[StatusChangeResult] = field(default_factory=list)
    missing: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the settings provider via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        ledger: IStockLedger,
        settings_provider: ISettingsProvider,
        status_catalog: Optional[StatusCatalog] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._settings = settings_provider
        self._statuses = status_catalog or StatusCatalog(settings_provider)
        self._resolver = BundleStockResolver(product_repository, ledger)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, user_id: Optional[int] = None) -> Order:
        """Create an order from line items or from packed fields.

        Creation never moves stock, whatever the initial status.

        Raises:
            InvalidOrderStatus: ``dto.status`` is not a known status.
            DuplicateOrderCode: ``dto.code`` is already used.
        """
        status = (
            self._statuses.validate(dto.status) if dto.status else self._statuses.default_status()
        )
        log = logger.bind(source=dto.source, status=status)

        if dto.items is not None:
            packed = self._pack(dto.items)
        else:
            packed = PackedLineItems(
                product_name=dto.product_name.strip(),
                catalog_number=(dto.catalog_number or "").strip() or None,
                quantity=1 if dto.quantity is None else dto.quantity,
                total_price=dto.total_price or Decimal("0.00"),
            )

        data: Dict[str, Any] = {
            "customer_name": dto.customer_name,
            "phone": dto.phone,
            "customer_email": dto.customer_email,
            "product_name": packed.product_name,
            "catalog_number": packed.catalog_number,
            "quantity": packed.quantity,
            "total_price": packed.total_price,
            "delivery_address": dto.delivery_address,
            "comment": dto.comment,
            "status": status,
            "source": dto.source,
            "store_reference": dto.store_reference,
        }
        if dto.code:
            if self._order_repo.list({"code": dto.code}):
                log.warning("order.duplicate_code", code=dto.code)
                raise DuplicateOrderCode(f"Order code '{dto.code}' already exists.")
            data["code"] = dto.code

        order = self._order_repo.create(data)
        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, status=status, source=dto.source)
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=status,
            notes="Order created",
            user_id=user_id,
        )

        log.info("order.creation_finished", order_id=order.id, code=order.code)
        return order

    @transaction.atomic
    def update_order(self, order_id: int, dto: UpdateOrderDTO) -> Order:
        """Edit contact data or replace the line items.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self.get_order(order_id)
        data = dto.changes()
        if dto.items is not None:
            packed = self._pack(dto.items)
            data.update(
                product_name=packed.product_name,
                catalog_number=packed.catalog_number,
                quantity=packed.quantity,
                total_price=packed.total_price,
            )
            if order.stock_applied:
                # restore still follows the ledger, not the new items
                logger.warning("order.items_changed_after_stock_applied", order_id=order.id)
            elif order.stock_reserved:
                logger.warning("order.items_changed_while_reserved", order_id=order.id)
        if not data:
            return order
        return self._order_repo.update(order.id, data)

    @transaction.atomic
    def delete_order(self, order_id: int) -> None:
        """Hard-delete an order; its stock movements stay in the ledger.

        Units the order still holds in ``reserved_stock`` are released.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.stock_reserved:
            self._release_reservation(order)
        self._order_repo.delete(order.id)

    @transaction.atomic
    def change_status(
        self,
        order_id: int,
        new_status: str,
        notes: str = "",
        user_id: Optional[int] = None,
    ) -> StatusChangeResult:
        """Move an order to ``new_status`` and run the stock triggers.

        The order row stays locked for the whole change so concurrent
        changes of the same order are serialised.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: ``new_status`` is not a known status.
            ConcurrentModification: product stock changed while the
                deduction was computed; nothing is committed.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        new_status = self._statuses.validate(new_status)
        policy = OperationalSettings.from_provider(self._settings)

        old_status = order.status
        result = StatusChangeResult(order=order, old_status=old_status)
        log = logger.bind(order_id=order.id, old_status=old_status, new_status=new_status)

        if (
            new_status == policy.deduction_status
            and policy.auto_deduct_enabled
            and not order.stock_applied
        ):
            result.stock_applied = self._apply_stock(order, new_status, result.warnings)
        elif new_status == policy.restore_status and order.stock_applied:
            result.stock_restored = self._restore_stock(order, new_status)
        elif (
            new_status == policy.reservation_status
            and policy.auto_deduct_enabled
            and not order.stock_applied
            and not order.stock_reserved
        ):
            result.stock_reserved = self._reserve_stock(order)

        if order.stock_reserved and new_status in (
            policy.deduction_status,
            policy.restore_status,
        ):
            result.reservation_released = self._release_reservation(order)

        order.status = new_status
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=new_status
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
            user_id=user_id,
        )

        log.info(
            "order.status_changed",
            stock_applied=result.stock_applied,
            stock_restored=result.stock_restored,
            stock_reserved=result.stock_reserved,
            warning_count=len(result.warnings),
        )
        return result

    def bulk_change_status(
        self,
        order_ids: Sequence[int],
        new_status: str,
        notes: str = "",
        user_id: Optional[int] = None,
    ) -> BulkStatusChangeResult:
        """Change the status of several orders, each in its own transaction.

        Missing orders and orders whose stock changed concurrently are
        reported per id; the other orders are still changed.

        Raises:
            InvalidOrderStatus: ``new_status`` is not a known status.
        """
        new_status = self._statuses.validate(new_status)
        result = BulkStatusChangeResult()
        for order_id in order_ids:
            try:
                result.changed.append(
                    self.change_status(order_id, new_status, notes=notes, user_id=user_id)
                )
            except OrderNotFound:
                result.missing.append(order_id)
            except ConcurrentModification as exc:
                result.failed[order_id] = str(exc)

        logger.info(
            "order.bulk_status_changed",
            new_status=new_status,
            changed=len(result.changed),
            missing=len(result.missing),
            failed=len(result.failed),
        )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def get_line_items(self, order_id: Any) -> List[LineItem]:
        order = self.get_order(order_id)
        return decode_line_items(
            order.product_name, order.catalog_number, order.quantity, order.total_price
        )

    def list_history(self, order_id: Any) -> List[OrderStatusHistory]:
        return list(self.get_order(order_id).status_history.all())

    def list_statuses(self) -> List[Dict]:
        return self._statuses.definitions()

    # ------------------------------------------------------------------
    # Stock triggers
    # ------------------------------------------------------------------

    def _apply_stock(self, order: Order, status: str, warnings: List[str]) -> bool:
        lines = self._resolve_lines(order, warnings)
        log = logger.bind(order_id=order.id)
        if not lines:
            log.warning("order.stock_nothing_to_apply", warnings=warnings)
            return False

        applied_at = timezone.now()
        try:
            # savepoint: a shortfall rolls back the claim, not the status change
            with transaction.atomic():
                if not self._order_repo.claim_stock_application(order.id, applied_at):
                    log.info("order.stock_already_applied")
                    return False
                movements = self._resolver.reserve_for_lines(
                    lines,
                    order_id=order.id,
                    reason=f"Order {order.code} -> {status}",
                )
                recorded = self._resolver.apply_movements(movements)
        except InsufficientStock as exc:
            warnings.append(str(exc))
            log.warning(
                "order.stock_shortfall",
                product_id=str(exc.product_id),
                requested=exc.requested,
                available=exc.available,
            )
            return False

        order.stock_applied_at = applied_at
        order.add_domain_event(
            StockApplied(aggregate_id=order.id, movement_count=len(recorded))
        )
        return True

    def _restore_stock(self, order: Order, status: str) -> bool:
        movements = self._resolver.release_for_order(
            order.id, reason=f"Order {order.code} -> {status}"
        )
        recorded = self._resolver.apply_movements(movements)
        self._order_repo.release_stock_application(order.id)
        order.stock_applied_at = None
        order.add_domain_event(
            StockRestored(aggregate_id=order.id, movement_count=len(recorded))
        )
        return True

    def _reserve_stock(self, order: Order) -> bool:
        warnings: List[str] = []
        held = self._resolver.reservation_for_lines(self._resolve_lines(order, warnings))
        log = logger.bind(order_id=order.id)
        if warnings:
            log.warning("order.reservation_incomplete", warnings=warnings)
        if not held:
            return False
        self._resolver.hold(held)
        order.reserved_items = {str(product_id): units for product_id, units in held.items()}
        log.info("order.stock_reserved", product_count=len(held))
        return True

    def _release_reservation(self, order: Order) -> bool:
        self._resolver.release_hold(
            {UUID(product_id): units for product_id, units in order.reserved_items.items()}
        )
        order.reserved_items = {}
        logger.info("order.reservation_released", order_id=order.id)
        return True

    def _resolve_lines(self, order: Order, warnings: List[str]) -> List[Tuple[UUID, int]]:
        lines: List[Tuple[UUID, int]] = []
        items = decode_line_items(
            order.product_name, order.catalog_number, order.quantity, order.total_price
        )
        for item in items:
            if item.needs_review:
                warnings.append(f"Line items of order {order.code} need review.")
                continue
            if not item.catalog_number:
                warnings.append(f"'{item.name}' has no catalog number; stock not changed.")
                continue
            product = self._product_repo.get_by_sku(item.catalog_number)
            if product is None:
                warnings.append(
                    f"No product with SKU '{item.catalog_number}' for '{item.name}'."
                )
                continue
            lines.append((product.id, item.quantity))
        return lines

    @staticmethod
    def _pack(items: Sequence[LineItemDTO]) -> PackedLineItems:
        return encode_line_items(item.to_line_item() for item in items)
