"""Runtime settings provider.

Admin-editable settings (the stock trigger statuses, policy flags, the
leasing status list) are stored in ``AppSetting`` rows and read through an
``ISettingsProvider`` injected into the services.  The Django cache holds a
snapshot of all rows for ``SETTINGS_CACHE_TTL`` seconds; writes through the
provider invalidate it explicitly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog
from django.conf import settings as django_settings
from django.core.cache import cache as default_cache
from pydantic import BaseModel, ConfigDict

from modules.core.models import AppSetting

logger = structlog.get_logger(__name__)

DEDUCTION_STATUS_KEY = "stock_deduction_status"
RESTORE_STATUS_KEY = "stock_restore_status"
RESERVATION_STATUS_KEY = "stock_reservation_status"
AUTO_DEDUCT_KEY = "stock_auto_deduct_enabled"
ALLOW_NESTED_BUNDLES_KEY = "allow_nested_bundles"
ALLOW_MULTIPLE_SHIPMENTS_KEY = "allow_multiple_active_shipments"
LEASING_STATUSES_KEY = "leasing_statuses"

_FALSY = {"false", "0", "no", "off"}


class ISettingsProvider(ABC):
    """Read access to runtime settings keyed by name."""

    @abstractmethod
    def get_all(self) -> Dict[str, Optional[str]]:
        """Return every configured setting."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_all().get(key)
        return default if value is None else value

    def invalidate(self) -> None:
        """Drop any cached snapshot."""


class CachedSettingsProvider(ISettingsProvider):
    """``AppSetting`` table behind the Django cache with an explicit TTL."""

    CACHE_KEY = "core:app_settings"

    def __init__(self, ttl: Optional[int] = None, cache: Any = None) -> None:
        self._ttl = ttl if ttl is not None else django_settings.SETTINGS_CACHE_TTL
        self._cache = cache if cache is not None else default_cache

    def get_all(self) -> Dict[str, Optional[str]]:
        values = self._cache.get(self.CACHE_KEY)
        if values is None:
            values = dict(
                AppSetting.objects.values_list("setting_key", "setting_value")
            )
            self._cache.set(self.CACHE_KEY, values, self._ttl)
            logger.debug("settings.cache_refreshed", count=len(values))
        return values

    def set(self, key: str, value: Optional[str]) -> None:
        AppSetting.objects.update_or_create(
            setting_key=key, defaults={"setting_value": value}
        )
        self.invalidate()
        logger.info("settings.updated", key=key)

    def invalidate(self) -> None:
        self._cache.delete(self.CACHE_KEY)


class StaticSettingsProvider(ISettingsProvider):
    """Fixed in-memory settings (tests, management commands)."""

    def __init__(self, values: Optional[Mapping[str, Optional[str]]] = None) -> None:
        self._values = dict(values or {})

    def get_all(self) -> Dict[str, Optional[str]]:
        return dict(self._values)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSY


class OperationalSettings(BaseModel):
    """Typed view over the runtime settings used by the services."""

    model_config = ConfigDict(frozen=True)

    deduction_status: str = "Shipped"
    restore_status: str = "Returned"
    reservation_status: str = "Processing"
    auto_deduct_enabled: bool = True
    allow_nested_bundles: bool = True
    allow_multiple_active_shipments: bool = True
    leasing_statuses: Tuple[str, ...] = ()

    @classmethod
    def from_provider(cls, provider: ISettingsProvider) -> OperationalSettings:
        values = provider.get_all()
        defaults = cls()
        leasing_raw = values.get(LEASING_STATUSES_KEY) or ""
        return cls(
            deduction_status=values.get(DEDUCTION_STATUS_KEY)
            or defaults.deduction_status,
            restore_status=values.get(RESTORE_STATUS_KEY) or defaults.restore_status,
            reservation_status=values.get(RESERVATION_STATUS_KEY)
            or defaults.reservation_status,
            auto_deduct_enabled=_as_bool(
                values.get(AUTO_DEDUCT_KEY), defaults.auto_deduct_enabled
            ),
            allow_nested_bundles=_as_bool(
                values.get(ALLOW_NESTED_BUNDLES_KEY), defaults.allow_nested_bundles
            ),
            allow_multiple_active_shipments=_as_bool(
                values.get(ALLOW_MULTIPLE_SHIPMENTS_KEY),
                defaults.allow_multiple_active_shipments,
            ),
            leasing_statuses=tuple(
                name.strip() for name in leasing_raw.split(",") if name.strip()
            ),
        )
