"""Asynchronous inventory tasks."""

import structlog
from celery import shared_task
from django.conf import settings
from django.utils.module_loading import import_string

from modules.core.settings_provider import CachedSettingsProvider
from modules.products.repositories.django_repository import (
    ProductDjangoRepository,
    StockLedgerDjangoRepository,
)
from modules.products.sync import CatalogSyncService

logger = structlog.get_logger(__name__)


@shared_task(name="products.sync_catalog")
def sync_catalog(source_path=None):
    """Pull the external catalog and reconcile it into the product table.

    ``source_path`` (or ``settings.CATALOG_SOURCE``) is the dotted path of
    an ``ICatalogSource`` implementation.
    """
    source_path = source_path or settings.CATALOG_SOURCE
    if not source_path:
        logger.info("catalog_sync.not_configured")
        return {"status": "skipped"}

    source = import_string(source_path)()
    service = CatalogSyncService(
        repository=ProductDjangoRepository(),
        ledger=StockLedgerDjangoRepository(),
        settings_provider=CachedSettingsProvider(),
    )
    result = service.reconcile(source.fetch())
    return {
        "status": "ok",
        "created": result.created,
        "updated": result.updated,
        "bundles": result.bundles,
        "skipped": result.skipped,
    }
