"""Order status catalog.

Status labels are rows of ``OrderStatusDefinition`` that admins edit at
runtime.  The catalog is read through the Django cache with an explicit TTL
and is invalidated whenever a definition is saved through the service.
Leasing statuses (``LeasingVia<Provider>``) are accepted as soon as they
carry the prefix or are listed in the ``leasing_statuses`` setting.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog
from django.conf import settings
from django.core.cache import cache as default_cache

from modules.core.settings_provider import ISettingsProvider, OperationalSettings
from modules.orders.constants import DEFAULT_STATUS, DEFAULT_STATUSES, LEASING_STATUS_PREFIX
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import OrderStatusDefinition

logger = structlog.get_logger(__name__)


class StatusCatalog:
    CACHE_KEY = "orders:status_catalog"

    def __init__(
        self,
        settings_provider: ISettingsProvider,
        ttl: Optional[int] = None,
        cache=None,
    ) -> None:
        self._settings = settings_provider
        self._ttl = settings.SETTINGS_CACHE_TTL if ttl is None else ttl
        self._cache = cache if cache is not None else default_cache

    def definitions(self) -> List[Dict]:
        cached = self._cache.get(self.CACHE_KEY)
        if cached is not None:
            return cached
        rows = list(
            OrderStatusDefinition.objects.values(
                "name", "color", "icon", "sort_order", "is_default", "is_terminal"
            )
        )
        if not rows:
            rows = _default_rows()
        self._cache.set(self.CACHE_KEY, rows, self._ttl)
        return rows

    def names(self) -> List[str]:
        return [row["name"] for row in self.definitions()]

    def default_status(self) -> str:
        for row in self.definitions():
            if row["is_default"]:
                return row["name"]
        return DEFAULT_STATUS

    def is_leasing_status(self, status: str) -> bool:
        if status.startswith(LEASING_STATUS_PREFIX) and len(status) > len(LEASING_STATUS_PREFIX):
            return True
        return status in OperationalSettings.from_provider(self._settings).leasing_statuses

    def validate(self, status: str) -> str:
        """Return the normalised status label or raise ``InvalidOrderStatus``."""
        status = (status or "").strip()
        if status and (status in self.names() or self.is_leasing_status(status)):
            return status
        logger.warning("order.status_rejected", status=status)
        raise InvalidOrderStatus(f"Unknown order status '{status}'.")

    def invalidate(self) -> None:
        self._cache.delete(self.CACHE_KEY)

    def save_definition(self, name: str, **attrs) -> OrderStatusDefinition:
        definition, _ = OrderStatusDefinition.objects.update_or_create(
            name=name, defaults=attrs
        )
        self.invalidate()
        logger.info("order.status_definition_saved", status=name)
        return definition

    def seed_defaults(self) -> int:
        """Create the built-in statuses that are missing; returns how many were added."""
        created = 0
        for row in _default_rows():
            name = row.pop("name")
            _, was_created = OrderStatusDefinition.objects.get_or_create(
                name=name, defaults=row
            )
            created += was_created
        self.invalidate()
        return created


def _default_rows() -> List[Dict]:
    return [
        {
            "name": status.name,
            "color": status.color,
            "icon": status.icon,
            "sort_order": position,
            "is_default": status.name == DEFAULT_STATUS,
            "is_terminal": status.is_terminal,
        }
        for position, status in enumerate(DEFAULT_STATUSES)
    ]
