"""Supply-order notifications — new order and status-change messages."""

from __future__ import annotations

import asyncio

import structlog

from fleetwatch.alerting.channels import DeliveryChannel
from fleetwatch.alerting.types import DeliveryResult
from fleetwatch.records.models import SupplyOrder
from fleetwatch.records.store import FleetRegistry

logger = structlog.get_logger(__name__)

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


def format_rupiah(amount: float) -> str:
    """Indonesian grouping: 1500000.5 -> "1.500.000,5"."""
    whole, frac = f"{abs(amount):,.3f}".split(".")
    text = whole.replace(",", ".")
    frac = frac.rstrip("0")
    if frac:
        text = f"{text},{frac}"
    return f"-{text}" if amount < 0 else text


def format_order_created(order: SupplyOrder) -> str:
    return "\n".join(
        [
            "📦 NEW ORDER",
            f"Vessel: {order.vessel_name}",
            f"Total: Rp {format_rupiah(order.total_price or 0)}",
            "Status: Pending Approval",
            f"Priority: {order.priority.value.upper()}",
        ]
    )


def format_order_status(order: SupplyOrder) -> str:
    return "\n".join(
        [
            f"✅ ORDER UPDATE - {order.vessel_name}",
            f"Status: {order.status.value.upper()}",
            f"Total: Rp {format_rupiah(order.total_price or 0)}",
        ]
    )


def notification_status(result: DeliveryResult | None) -> str:
    if result is None:
        return STATUS_SKIPPED
    return STATUS_SENT if result.success else STATUS_FAILED


class OrderNotifier:
    """Sends order messages over the delivery channel.

    A failed or timed-out send is reported in the returned DeliveryResult and
    never raised; the order request itself still succeeds.
    """

    def __init__(
        self,
        channel: DeliveryChannel,
        registry: FleetRegistry,
        delivery_timeout_secs: float = 10.0,
    ) -> None:
        self._channel = channel
        self._registry = registry
        self._timeout_secs = delivery_timeout_secs

    async def notify_created(self, order: SupplyOrder) -> DeliveryResult | None:
        """Tell the assigned user about a new order. None if nobody to tell."""
        if not order.assigned_to:
            return None
        user = self._registry.users.find(order.assigned_to)
        if user is None or not user.whatsapp_number:
            logger.info("order_assignee_unreachable", order_id=order.id, user_id=order.assigned_to)
            return None
        return await self._send(user.id, user.whatsapp_number, format_order_created(order))

    async def notify_status(self, order: SupplyOrder) -> DeliveryResult | None:
        """Tell the order's contact number about a status change."""
        if not order.whatsapp_number:
            return None
        return await self._send("", order.whatsapp_number, format_order_status(order))

    async def _send(self, recipient_id: str, address: str, message: str) -> DeliveryResult:
        try:
            receipt = await asyncio.wait_for(
                self._channel.send(address, message),
                timeout=self._timeout_secs,
            )
        except asyncio.TimeoutError:
            logger.warning("order_notification_timeout", target=address)
            return DeliveryResult(
                recipient_id=recipient_id,
                address=address,
                success=False,
                reason=f"timed out after {self._timeout_secs:g}s",
            )
        except Exception as exc:
            logger.exception("order_notification_error", target=address)
            return DeliveryResult(
                recipient_id=recipient_id,
                address=address,
                success=False,
                reason=f"{type(exc).__name__}: {exc}",
            )
        return DeliveryResult(
            recipient_id=recipient_id,
            address=address,
            success=receipt.success,
            reason=receipt.reason,
        )
