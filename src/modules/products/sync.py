"""External catalog reconciliation.

A catalog source (e-commerce platform, supplier feed) yields
``CatalogEntry`` rows; ``CatalogSyncService`` upserts them into the product
table by external id, then SKU.  Stock differences are booked as
``adjustment_*`` movements so the ledger keeps explaining every stock
value.  Bundle components are replaced wholesale once all plain products
of the batch exist.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

import requests
import structlog
from django.conf import settings
from django.db import transaction

from modules.core.settings_provider import OperationalSettings
from modules.products.exceptions import CatalogSourceError, ConcurrentModification
from modules.products.models import MovementType, Product
from modules.products.stock import BundleStockResolver

if TYPE_CHECKING:
    from modules.core.settings_provider import ISettingsProvider
    from modules.products.repositories.interfaces import (
        IProductRepository,
        IStockLedger,
    )

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    external_id: str
    name: str
    sku: str
    price: Decimal
    stock: int
    is_bundle: bool = False
    external_bundle_type: Optional[str] = None
    components: Tuple[Tuple[str, int], ...] = ()


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    bundles: int = 0
    skipped: List[str] = field(default_factory=list)


class ICatalogSource(ABC):
    """Produces the current state of an external catalog."""

    @abstractmethod
    def fetch(self) -> List[CatalogEntry]:
        """Return every product the external catalog knows about."""


class HttpCatalogSource(ICatalogSource):
    """Reads a JSON product feed with ``GET <url>``.

    The feed is a list (or ``{"products": [...]}``) of objects with ``id``,
    ``name``, ``sku``, ``price``, ``stock`` and, for bundles, ``is_bundle``,
    ``bundle_type`` and ``components`` (``[{"sku", "quantity"}]``).  Rows
    without a SKU or with an unreadable price are skipped.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url or settings.CATALOG_SOURCE_URL
        self._timeout = timeout
        self._session = session or requests.Session()
        api_key = settings.CATALOG_SOURCE_API_KEY if api_key is None else api_key
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    def fetch(self) -> List[CatalogEntry]:
        if not self._url:
            raise CatalogSourceError("CATALOG_SOURCE_URL is not configured")
        try:
            response = self._session.get(self._url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as exc:
            raise CatalogSourceError(f"Catalog feed request failed: {exc}") from exc
        except ValueError as exc:
            raise CatalogSourceError("Catalog feed is not JSON") from exc

        rows = payload.get("products", []) if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise CatalogSourceError("Catalog feed has an unexpected shape")

        entries = []
        for row in rows:
            entry = _to_entry(row)
            if entry is None:
                logger.warning("catalog_source.row_skipped", row_id=row.get("id"))
                continue
            entries.append(entry)
        logger.info("catalog_source.fetched", rows=len(rows), entries=len(entries))
        return entries


def _to_entry(row: Dict[str, Any]) -> Optional[CatalogEntry]:
    sku = str(row.get("sku") or "").strip()
    if not sku:
        return None
    try:
        price = Decimal(str(row.get("price") or "0"))
        stock = int(row.get("stock") or 0)
        components = tuple(
            (str(c["sku"]), int(c.get("quantity") or 1))
            for c in row.get("components") or ()
            if c.get("sku")
        )
    except (InvalidOperation, TypeError, ValueError):
        return None
    return CatalogEntry(
        external_id=str(row.get("id") or sku),
        name=str(row.get("name") or sku),
        sku=sku,
        price=price,
        stock=stock,
        is_bundle=bool(row.get("is_bundle") or components),
        external_bundle_type=row.get("bundle_type"),
        components=components,
    )


class CatalogSyncService:
    def __init__(
        self,
        repository: IProductRepository,
        ledger: IStockLedger,
        settings_provider: ISettingsProvider,
    ) -> None:
        self._repo = repository
        self._settings = settings_provider
        self._resolver = BundleStockResolver(repository, ledger)

    def reconcile(self, entries: Iterable[CatalogEntry]) -> SyncResult:
        result = SyncResult()
        entries = list(entries)
        log = logger.bind(entry_count=len(entries))
        log.info("catalog_sync.started")

        synced: List[Tuple[CatalogEntry, Product]] = []
        for entry in entries:
            try:
                with transaction.atomic():
                    product, created = self._upsert(entry)
            except ConcurrentModification:
                log.warning("catalog_sync.entry_skipped", sku=entry.sku, reason="concurrent")
                result.skipped.append(entry.sku)
                continue
            if created:
                result.created += 1
            else:
                result.updated += 1
            synced.append((entry, product))

        policy = OperationalSettings.from_provider(self._settings)
        for entry, product in synced:
            if entry.is_bundle:
                result.bundles += self._sync_components(entry, product, policy)

        log.info(
            "catalog_sync.finished",
            created=result.created,
            updated=result.updated,
            bundles=result.bundles,
            skipped=len(result.skipped),
        )
        return result

    def _upsert(self, entry: CatalogEntry) -> Tuple[Product, bool]:
        product = self._repo.get_by_external_id(entry.external_id) or self._repo.get_by_sku(
            entry.sku
        )
        created = product is None
        if created:
            product = self._repo.save(
                Product(
                    sku=entry.sku,
                    name=entry.name,
                    sale_price=entry.price,
                    is_bundle=entry.is_bundle,
                    external_bundle_type=entry.external_bundle_type,
                    external_id=entry.external_id,
                )
            )
        else:
            product = self._repo.update(
                product.id,
                {
                    "name": entry.name,
                    "sale_price": entry.price,
                    "is_bundle": entry.is_bundle,
                    "external_bundle_type": entry.external_bundle_type,
                    "external_id": entry.external_id,
                },
            )
            if not entry.is_bundle:
                self._repo.replace_components(product.id, [])

        # a bundle's own stock is informational, availability comes from components
        delta = max(entry.stock, 0) - product.current_stock
        if not entry.is_bundle and delta:
            movement_type = MovementType.ADJUSTMENT_IN if delta > 0 else MovementType.ADJUSTMENT_OUT
            movement = self._resolver.plan_adjustment(
                product.id, movement_type, abs(delta), reason="Catalog sync"
            )
            self._resolver.apply_movements([movement])
        return product, created

    def _sync_components(
        self, entry: CatalogEntry, bundle: Product, policy: OperationalSettings
    ) -> int:
        pairs = []
        for sku, quantity in entry.components:
            component = self._repo.get_by_sku(sku)
            if component is None or component.id == bundle.id:
                logger.warning(
                    "catalog_sync.component_unknown", bundle_sku=bundle.sku, component_sku=sku
                )
                continue
            if component.is_bundle and not policy.allow_nested_bundles:
                logger.warning(
                    "catalog_sync.nested_bundle_rejected",
                    bundle_sku=bundle.sku,
                    component_sku=sku,
                )
                continue
            pairs.append((component.id, max(quantity, 1)))
        self._repo.replace_components(bundle.id, pairs)
        return len(pairs)
