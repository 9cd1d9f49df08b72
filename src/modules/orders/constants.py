"""Order domain constants.

Order statuses are an admin-editable catalog (``OrderStatusDefinition``)
rather than a closed enum.  ``DEFAULT_STATUSES`` seeds the catalog and is
the fallback when the table is empty.  Any status may follow any other:
status changes are flat label changes; the only side effects are the stock
reservation, deduction and restore triggers configured in the runtime
settings.
"""

from __future__ import annotations

from typing import NamedTuple


class OrderStatus:
    NEW = "New"
    PROCESSING = "Processing"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    FAILED_CONTACT = "FailedContact"
    FAILED_DELIVERY = "FailedDelivery"
    RETURNED = "Returned"
    CANCELLED = "Cancelled"


class StatusSpec(NamedTuple):
    name: str
    color: str
    icon: str
    is_terminal: bool = False


DEFAULT_STATUSES: tuple[StatusSpec, ...] = (
    StatusSpec(OrderStatus.NEW, "#3b82f6", "sparkles"),
    StatusSpec(OrderStatus.PROCESSING, "#f59e0b", "loader"),
    StatusSpec(OrderStatus.CONFIRMED, "#10b981", "check"),
    StatusSpec(OrderStatus.SHIPPED, "#6366f1", "truck"),
    StatusSpec(OrderStatus.DELIVERED, "#22c55e", "package-check"),
    StatusSpec(OrderStatus.COMPLETED, "#16a34a", "circle-check", True),
    StatusSpec(OrderStatus.FAILED_CONTACT, "#f97316", "phone-off"),
    StatusSpec(OrderStatus.FAILED_DELIVERY, "#ef4444", "package-x"),
    StatusSpec(OrderStatus.RETURNED, "#a855f7", "undo", True),
    StatusSpec(OrderStatus.CANCELLED, "#6b7280", "ban", True),
)

DEFAULT_STATUS = OrderStatus.NEW

LEASING_STATUS_PREFIX = "LeasingVia"

ORDER_CODE_MAX_RETRIES = 5
