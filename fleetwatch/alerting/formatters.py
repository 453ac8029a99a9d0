"""Pure functions that turn violations into outbound message text."""

from __future__ import annotations

from collections.abc import Sequence

from fleetwatch.alerting.types import Violation
from fleetwatch.core.types import Severity

# ── Header per batch severity ───────────────────────────────────

_HEADERS: dict[Severity, str] = {
    Severity.INFO: "ℹ️ NOTICE",
    Severity.WARNING: "⚠️ WARNING",
    Severity.CRITICAL: "🚨 ALERT",
}

_LINE_PREFIX = "⚠️ "


def batch_severity(violations: Sequence[Violation]) -> Severity | None:
    """Highest severity in the batch, or None when it is empty."""
    if not violations:
        return None
    return max(v.rule.severity for v in violations)


def format_violation_line(violation: Violation) -> str:
    return f"{_LINE_PREFIX}{violation.describe()}"


def format_violation_batch(vessel_label: str, violations: Sequence[Violation]) -> str:
    """Render one message aggregating every violation for a vessel.

    Example::

        🚨 ALERT - KM Sinar Bahari
        ⚠️ ME1: Coolant temperature CRITICAL (97°C)
        ⚠️ ME2: Battery Voltage LOW (23.5V)
    """
    severity = batch_severity(violations) or Severity.INFO
    lines = [f"{_HEADERS[severity]} - {vessel_label}"]
    lines.extend(format_violation_line(v) for v in violations)
    return "\n".join(lines)
