"""Notifier dispatch — resolves recipients and fans a vessel's alert out to them."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

import structlog

from fleetwatch.alerting.channels import DeliveryChannel
from fleetwatch.alerting.formatters import batch_severity, format_violation_batch
from fleetwatch.alerting.types import (
    DeliveryResult,
    DispatchOutcome,
    OutcomeStatus,
    Recipient,
    RecipientDirectory,
    Violation,
)

# Dedicated structured logger for every batch that leaves the engine.
alert_logger = structlog.get_logger("alert_log")

logger = structlog.get_logger(__name__)


class AlertDispatcher:
    """Sends one aggregated message per vessel to each eligible recipient.

    - Recipients are resolved per call; only those assigned to the vessel,
      holding an eligible role, and having a contact address are kept.
    - No eligible recipients is a reportable no-op, not an error.
    - Deliveries run concurrently, each bounded by *delivery_timeout_secs*.
      A failure for one recipient never blocks or retries another.
    """

    def __init__(
        self,
        directory: RecipientDirectory,
        channel: DeliveryChannel,
        eligible_roles: Iterable[str] = ("manager",),
        delivery_timeout_secs: float = 10.0,
    ) -> None:
        self._directory = directory
        self._channel = channel
        self._eligible_roles = frozenset(r.lower() for r in eligible_roles)
        self._timeout_secs = delivery_timeout_secs

    def _eligible(self, vessel_id: str, recipients: Sequence[Recipient]) -> list[Recipient]:
        return [
            r
            for r in recipients
            if r.role.lower() in self._eligible_roles
            and r.vessel_id == vessel_id
            and r.address
        ]

    async def eligible_recipients(self, vessel_id: str) -> list[Recipient]:
        """Resolve the recipients that should hear about *vessel_id*."""
        return self._eligible(vessel_id, await self._directory.resolve_recipients(vessel_id))

    async def dispatch(
        self,
        vessel_id: str,
        violations: Sequence[Violation],
        vessel_label: str | None = None,
    ) -> DispatchOutcome:
        if not violations:
            return DispatchOutcome(vessel_id=vessel_id, status=OutcomeStatus.NO_VIOLATIONS)
        recipients = await self.eligible_recipients(vessel_id)
        return await self.deliver(vessel_id, violations, recipients, vessel_label)

    async def deliver(
        self,
        vessel_id: str,
        violations: Sequence[Violation],
        recipients: Sequence[Recipient],
        vessel_label: str | None = None,
    ) -> DispatchOutcome:
        """Send one aggregated message to already-resolved *recipients*."""
        if not recipients:
            logger.info(
                "alert_no_recipients",
                vessel_id=vessel_id,
                violations=len(violations),
            )
            return DispatchOutcome(
                vessel_id=vessel_id,
                status=OutcomeStatus.NO_RECIPIENTS,
                violation_count=len(violations),
            )

        message = format_violation_batch(vessel_label or vessel_id, violations)
        results = await asyncio.gather(
            *(self._send_one(r, message) for r in recipients)
        )

        outcome = DispatchOutcome(
            vessel_id=vessel_id,
            status=OutcomeStatus.DISPATCHED,
            violation_count=len(violations),
            message=message,
            deliveries=list(results),
        )
        severity = batch_severity(violations)
        alert_logger.info(
            "alert_dispatched",
            vessel_id=vessel_id,
            severity=severity.name if severity else None,
            rules=[v.rule.id for v in violations],
            recipients=len(recipients),
            delivered=outcome.delivered,
            failed=outcome.failed,
        )
        return outcome

    async def _send_one(self, recipient: Recipient, message: str) -> DeliveryResult:
        try:
            receipt = await asyncio.wait_for(
                self._channel.send(recipient.address, message),
                timeout=self._timeout_secs,
            )
        except asyncio.TimeoutError:
            reason = f"timed out after {self._timeout_secs:g}s"
            logger.warning("alert_delivery_timeout", recipient_id=recipient.id)
            return self._result(recipient, success=False, reason=reason)
        except Exception as exc:
            logger.exception(
                "alert_delivery_error",
                channel=type(self._channel).__name__,
                recipient_id=recipient.id,
            )
            return self._result(recipient, success=False, reason=f"{type(exc).__name__}: {exc}")

        if not receipt.success:
            logger.warning(
                "alert_delivery_failed",
                recipient_id=recipient.id,
                reason=receipt.reason,
            )
        return self._result(recipient, success=receipt.success, reason=receipt.reason)

    @staticmethod
    def _result(recipient: Recipient, *, success: bool, reason: str = "") -> DeliveryResult:
        return DeliveryResult(
            recipient_id=recipient.id,
            address=recipient.address,
            success=success,
            reason=reason,
        )
