"""Integration tests for OrderDjangoRepository."""

from __future__ import annotations

import re

import pytest
from django.utils import timezone

from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def repo():
    return OrderDjangoRepository()


def _data(**overrides):
    data = {"customer_name": "Maria", "product_name": "Camera", "quantity": 1}
    data.update(overrides)
    return data


class TestCreate:
    def test_generates_code(self, repo):
        order = repo.create(_data())

        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.code)

    def test_keeps_channel_code(self, repo):
        assert repo.create(_data(code="SHOP-77")).code == "SHOP-77"


class TestUpdate:
    def test_updates_fields(self, repo):
        order = repo.create(_data())

        updated = repo.update(order.id, {"comment": "Fragile"})

        assert updated.comment == "Fragile"

    @pytest.mark.parametrize("field", ["code", "stock_applied_at", "id"])
    def test_immutable_fields(self, repo, field):
        order = repo.create(_data())

        with pytest.raises(ValueError, match=field):
            repo.update(order.id, {field: None})

    def test_unknown_order(self, repo):
        with pytest.raises(Order.DoesNotExist):
            repo.update(999999, {"comment": "x"})


class TestLookups:
    def test_invalid_ids_return_none(self, repo):
        assert repo.get_by_id("not-a-number") is None
        assert repo.get_by_id(999999) is None

    def test_list_with_filters(self, repo):
        first = repo.create(_data(status="Shipped"))
        repo.create(_data())

        assert [o.id for o in repo.list({"status": "Shipped"})] == [first.id]

    def test_delete(self, repo):
        order = repo.create(_data())

        assert repo.delete(order.id) is True
        assert repo.delete(order.id) is False


class TestStockClaim:
    def test_claim_once(self, repo):
        order = repo.create(_data())

        assert repo.claim_stock_application(order.id, timezone.now()) is True
        assert repo.claim_stock_application(order.id, timezone.now()) is False

    def test_release_allows_new_claim(self, repo):
        order = repo.create(_data())
        repo.claim_stock_application(order.id, timezone.now())

        assert repo.release_stock_application(order.id) is True
        assert repo.release_stock_application(order.id) is False
        assert repo.claim_stock_application(order.id, timezone.now()) is True


class TestHistory:
    def test_history_newest_first(self, repo):
        order = repo.create(_data())
        repo.add_history(order.id, "New")
        repo.add_history(order.id, "Shipped", old_status="New", notes="Courier picked up")

        history = repo.list_history(order.id)

        assert [h.new_status for h in history] == ["Shipped", "New"]
        assert history[0].notes == "Courier picked up"
        assert history[0].user_id is None
