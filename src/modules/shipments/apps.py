from django.apps import AppConfig
from django.conf import settings


class ShipmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.shipments"
    label = "shipments"

    def ready(self) -> None:
        from modules.shipments.gateways import gateway_registry

        gateway_registry.load(getattr(settings, "COURIER_GATEWAYS", {}))
