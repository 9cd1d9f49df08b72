"""Unit tests for BundleStockResolver with in-memory repositories.

Covers:
- availability of plain products and bundles (floor of component stock).
- reservation: plain sale, bundle sale, shared components, shortfalls.
- apply_movements: version-checked writes, all-or-nothing.
- release_for_order: netting of out/return movements.
- held stock: bundle expansion without stock checks, reserved counters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest

from modules.products.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    ProductNotFound,
    UnconfiguredBundle,
)
from modules.products.models import MovementType
from modules.products.stock import BundleStockResolver

pytestmark = pytest.mark.unit


@dataclass
class StubProduct:
    current_stock: int = 0
    is_bundle: bool = False
    version: int = 0
    sale_price: Decimal = Decimal("10.00")
    purchase_price: Decimal = Decimal("4.00")
    id: UUID = field(default_factory=uuid4)


@dataclass
class StubLink:
    component: StubProduct
    quantity: int

    @property
    def component_id(self) -> UUID:
        return self.component.id


@dataclass
class StubMovement:
    product_id: UUID
    movement_type: str
    quantity: int


class InMemoryCatalog:
    def __init__(self) -> None:
        self.products = {}
        self.components = {}

    def add(self, product: StubProduct, components: List[StubLink] = ()) -> StubProduct:
        self.products[product.id] = product
        if product.is_bundle:
            self.components[product.id] = list(components)
        return product

    def repository(self) -> MagicMock:
        repo = MagicMock()
        repo.get_by_id.side_effect = self.products.get
        repo.get_components.side_effect = lambda pid: self.components.get(pid, [])
        repo.apply_stock_delta.side_effect = self._apply
        return repo

    def _apply(self, product_id, delta, expected_version):
        product = self.products[product_id]
        if product.version != expected_version or product.current_stock + delta < 0:
            return False
        product.current_stock += delta
        product.version += 1
        return True


@pytest.fixture()
def catalog():
    return InMemoryCatalog()


@pytest.fixture()
def ledger():
    ledger = MagicMock()
    ledger.append.side_effect = lambda data: MagicMock(**data)
    ledger.list_for_order.return_value = []
    return ledger


@pytest.fixture()
def resolver(catalog, ledger):
    return BundleStockResolver(catalog.repository(), ledger)


@pytest.fixture()
def kit(catalog):
    """Bundle needing 1 x camera (stock 10), 2 x mount (stock 7), 1 x card (stock 4)."""
    camera = catalog.add(StubProduct(current_stock=10))
    mount = catalog.add(StubProduct(current_stock=7))
    card = catalog.add(StubProduct(current_stock=4))
    bundle = catalog.add(
        StubProduct(is_bundle=True),
        [StubLink(camera, 1), StubLink(mount, 2), StubLink(card, 1)],
    )
    return bundle, camera, mount, card


# ===========================================================================
# Availability
# ===========================================================================


class TestAvailability:
    def test_plain_product(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=5))

        availability = resolver.get_availability(product.id)

        assert availability.available == 5
        assert not availability.is_bundle

    def test_bundle_is_floor_over_components(self, resolver, kit):
        bundle, _, mount, _ = kit

        availability = resolver.get_availability(bundle.id)

        assert availability.available == 3
        assert availability.limiting_component_id == mount.id

    def test_bundle_grows_with_component_stock(self, resolver, kit):
        bundle, camera, mount, card = kit
        mount.current_stock = 100
        card.current_stock = 100

        assert resolver.get_availability(bundle.id).available == camera.current_stock

    def test_bundle_own_stock_is_ignored(self, resolver, kit):
        bundle = kit[0]
        bundle.current_stock = 999

        assert resolver.get_availability(bundle.id).available == 3

    def test_unconfigured_bundle_is_unavailable(self, catalog, resolver):
        bundle = catalog.add(StubProduct(is_bundle=True))

        availability = resolver.get_availability(bundle.id)

        assert availability.available == 0
        assert availability.unconfigured

    def test_unknown_product(self, resolver):
        with pytest.raises(ProductNotFound):
            resolver.get_availability(uuid4())


# ===========================================================================
# Reservation
# ===========================================================================


class TestReservation:
    def test_plain_sale(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=5, version=3))

        (movement,) = resolver.reserve_for_sale(product.id, 2, order_id=7, reason="sale")

        assert movement.movement_type == MovementType.OUT
        assert (movement.quantity, movement.stock_before, movement.stock_after) == (2, 5, 3)
        assert movement.expected_version == 3
        assert movement.order_id == 7
        assert movement.delta == -2

    def test_bundle_sale_moves_components_only(self, resolver, kit):
        bundle, camera, mount, card = kit

        movements = resolver.reserve_for_sale(bundle.id, 2)

        by_product = {m.product_id: m.quantity for m in movements}
        assert by_product == {camera.id: 2, mount.id: 4, card.id: 2}
        assert bundle.id not in by_product

    def test_bundle_shortfall_names_limiting_component(self, resolver, kit):
        bundle, _, mount, _ = kit

        with pytest.raises(InsufficientStock) as excinfo:
            resolver.reserve_for_sale(bundle.id, 4)

        assert excinfo.value.product_id == bundle.id
        assert excinfo.value.available == 3
        assert excinfo.value.limiting_component_id == mount.id

    def test_shared_component_demand_is_summed(self, catalog, resolver, kit):
        bundle, camera, _, _ = kit

        movements = resolver.reserve_for_lines([(bundle.id, 3), (camera.id, 7)])

        camera_moves = [m for m in movements if m.product_id == camera.id]
        assert len(camera_moves) == 1
        assert camera_moves[0].quantity == 10

    def test_summed_demand_beyond_stock_fails(self, resolver, kit):
        bundle, camera, _, _ = kit

        with pytest.raises(InsufficientStock) as excinfo:
            resolver.reserve_for_lines([(bundle.id, 3), (camera.id, 8)])

        assert excinfo.value.product_id == camera.id
        assert excinfo.value.requested == 11

    def test_plain_shortfall(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=1))

        with pytest.raises(InsufficientStock):
            resolver.reserve_for_sale(product.id, 2)

    def test_unconfigured_bundle_cannot_be_sold(self, catalog, resolver):
        bundle = catalog.add(StubProduct(is_bundle=True))

        with pytest.raises(UnconfiguredBundle):
            resolver.reserve_for_sale(bundle.id, 1)

    def test_zero_quantity_yields_nothing(self, resolver, kit):
        assert resolver.reserve_for_sale(kit[0].id, 0) == []

    def test_negative_quantity_rejected(self, resolver, kit):
        with pytest.raises(ValueError):
            resolver.reserve_for_sale(kit[0].id, -1)

    def test_reservation_writes_nothing(self, catalog, resolver, ledger, kit):
        resolver.reserve_for_sale(kit[0].id, 1)

        assert kit[1].current_stock == 10
        ledger.append.assert_not_called()


# ===========================================================================
# Commit
# ===========================================================================


class TestApplyMovements:
    def test_applies_deltas_and_records_ledger(self, resolver, ledger, kit):
        bundle, camera, mount, card = kit

        recorded = resolver.apply_movements(resolver.reserve_for_sale(bundle.id, 3))

        assert (camera.current_stock, mount.current_stock, card.current_stock) == (7, 1, 1)
        assert len(recorded) == 3
        assert ledger.append.call_count == 3
        assert resolver.get_availability(bundle.id).available == 0

    def test_concurrent_change_is_detected(self, resolver, kit):
        bundle, _, mount, _ = kit
        movements = resolver.reserve_for_sale(bundle.id, 1)
        mount.version += 1

        with pytest.raises(ConcurrentModification) as excinfo:
            resolver.apply_movements(movements)

        assert excinfo.value.product_id == mount.id


# ===========================================================================
# Held stock
# ===========================================================================


class TestHeldStock:
    def test_bundle_lines_expand_to_components(self, catalog, resolver, kit):
        bundle, camera, mount, card = kit

        held = resolver.reservation_for_lines([(bundle.id, 2), (camera.id, 1)])

        assert held == {camera.id: 3, mount.id: 4, card.id: 2}

    def test_no_stock_check(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=1))

        assert resolver.reservation_for_lines([(product.id, 40), (product.id, 0)]) == {
            product.id: 40
        }

    def test_unconfigured_bundle_holds_nothing(self, catalog, resolver):
        bundle = catalog.add(StubProduct(is_bundle=True))

        assert resolver.reservation_for_lines([(bundle.id, 1)]) == {}

    def test_hold_and_release_adjust_reserved(self, catalog, resolver):
        product = catalog.add(StubProduct())
        repo = resolver._products

        resolver.hold({product.id: 3})
        resolver.release_hold({product.id: 3})

        assert [c.args for c in repo.adjust_reserved.call_args_list] == [
            (product.id, 3),
            (product.id, -3),
        ]


# ===========================================================================
# Release
# ===========================================================================


class TestReleaseForOrder:
    def test_returns_what_was_taken(self, catalog, resolver, ledger):
        product = catalog.add(StubProduct(current_stock=3))
        ledger.list_for_order.return_value = [
            StubMovement(product.id, MovementType.OUT, 2),
        ]

        (movement,) = resolver.release_for_order(9, reason="returned")

        assert movement.movement_type == MovementType.RETURN
        assert (movement.quantity, movement.stock_before, movement.stock_after) == (2, 3, 5)
        assert movement.order_id == 9

    def test_earlier_returns_are_netted(self, catalog, resolver, ledger):
        first = catalog.add(StubProduct(current_stock=3))
        second = catalog.add(StubProduct(current_stock=3))
        ledger.list_for_order.return_value = [
            StubMovement(first.id, MovementType.OUT, 2),
            StubMovement(second.id, MovementType.OUT, 1),
            StubMovement(first.id, MovementType.RETURN, 2),
            StubMovement(second.id, MovementType.OUT, 1),
        ]

        movements = resolver.release_for_order(9)

        assert [(m.product_id, m.quantity) for m in movements] == [(second.id, 2)]

    def test_nothing_outstanding(self, resolver, ledger):
        assert resolver.release_for_order(9) == []


class TestPlanAdjustment:
    def test_decrease_below_zero_rejected(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=2))

        with pytest.raises(InsufficientStock):
            resolver.plan_adjustment(product.id, MovementType.ADJUSTMENT_OUT, 3)

    def test_increase_uses_purchase_price(self, catalog, resolver):
        product = catalog.add(StubProduct(current_stock=2))

        movement = resolver.plan_adjustment(product.id, MovementType.IN, 5)

        assert movement.stock_after == 7
        assert movement.unit_price == Decimal("4.00")
