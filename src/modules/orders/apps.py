from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCreated,
            OrderStatusChanged,
            StockApplied,
            StockRestored,
        )
        from modules.orders.handlers import (
            order_created_handler,
            order_status_changed_handler,
            stock_movement_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(StockApplied, stock_movement_handler)
        event_bus.subscribe(StockRestored, stock_movement_handler)
