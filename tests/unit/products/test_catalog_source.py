"""Unit tests for the JSON catalog feed reader."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from modules.core.exceptions import ExternalCollaboratorError
from modules.products.exceptions import CatalogSourceError
from modules.products.sync import HttpCatalogSource

pytestmark = pytest.mark.unit


def _source(body=None, error=None):
    session = MagicMock()
    session.headers = {}
    response = MagicMock()
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    session.get.return_value = response
    if error is not None:
        session.get.side_effect = error
    return HttpCatalogSource(url="https://shop.test/feed", api_key="k", session=session)


class TestHttpCatalogSource:
    def test_reads_plain_and_bundle_rows(self):
        source = _source(
            {
                "products": [
                    {"id": 11, "name": "Camera", "sku": "CAM-001", "price": "99.90", "stock": 4},
                    {
                        "id": 12,
                        "name": "Vlog kit",
                        "sku": "KIT-001",
                        "price": "129",
                        "bundle_type": "woosb",
                        "components": [{"sku": "CAM-001", "quantity": 1}, {"sku": "MNT-001"}],
                    },
                ]
            }
        )

        camera, kit = source.fetch()

        assert camera.external_id == "11"
        assert camera.price == Decimal("99.90")
        assert camera.stock == 4
        assert camera.is_bundle is False
        assert kit.is_bundle is True
        assert kit.external_bundle_type == "woosb"
        assert kit.components == (("CAM-001", 1), ("MNT-001", 1))
        assert source._session.headers["Authorization"] == "Bearer k"

    def test_skips_rows_without_sku_or_price(self):
        source = _source(
            [
                {"id": 1, "name": "No code", "price": "5"},
                {"id": 2, "sku": "BAD-1", "price": "n/a"},
                {"id": 3, "sku": "OK-1", "price": "5", "stock": 2},
            ]
        )

        assert [e.sku for e in source.fetch()] == ["OK-1"]

    def test_network_error(self):
        source = _source(error=requests.exceptions.ConnectionError("down"))

        with pytest.raises(CatalogSourceError, match="request failed"):
            source.fetch()

    def test_non_json_body(self):
        source = _source(ValueError("no json"))

        with pytest.raises(CatalogSourceError, match="not JSON"):
            source.fetch()

    def test_unexpected_shape(self):
        with pytest.raises(CatalogSourceError, match="shape"):
            _source({"products": "none"}).fetch()

    def test_missing_url(self, settings):
        settings.CATALOG_SOURCE_URL = ""
        source = HttpCatalogSource(api_key="", session=MagicMock())

        with pytest.raises(CatalogSourceError, match="CATALOG_SOURCE_URL"):
            source.fetch()

    def test_is_a_collaborator_error(self):
        assert issubclass(CatalogSourceError, ExternalCollaboratorError)
