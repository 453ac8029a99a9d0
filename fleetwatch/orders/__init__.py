"""Supply-order notifications."""

from fleetwatch.orders.notifier import (
    OrderNotifier,
    format_order_created,
    format_order_status,
    format_rupiah,
    notification_status,
)

__all__ = [
    "OrderNotifier",
    "format_order_created",
    "format_order_status",
    "format_rupiah",
    "notification_status",
]
