"""Domain types for the critical-condition alerting engine."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, NamedTuple, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fleetwatch.core.types import Severity

# Units are fixed per signal name; readings never carry their own.
SIGNAL_UNITS: dict[str, str] = {
    "rpm": "rpm",
    "coolant_temp": "°C",
    "turbo_press": "kPa",
    "engine_oil_press": "kPa",
    "trans_oil_temp": "°C",
    "trans_oil_press": "kPa",
    "exhaust_temp": "°C",
    "battery_voltage": "V",
    "fuel_rate": "L/h",
    "fuel_pressure": "kPa",
    "running_hour": "h",
}

# Placeholders a rule message template may reference.
TEMPLATE_FIELDS: frozenset[str] = frozenset(
    {"engine_id", "vessel_id", "signal", "value", "threshold", "unit", "severity", "rule_id"}
)


def format_number(value: float) -> str:
    """Render a reading without a trailing ``.0`` (97.0 -> "97")."""
    return f"{value:g}"


class Comparison(StrEnum):
    """Threshold comparison operator. Equality never breaches either form."""

    GREATER_THAN = ">"
    LESS_THAN = "<"


class Rule(BaseModel):
    """A single threshold check on one telemetry signal."""

    model_config = ConfigDict(frozen=True)

    id: str
    signal: str = Field(min_length=1)
    op: Comparison
    threshold: float = Field(allow_inf_nan=False)
    severity: Severity = Severity.CRITICAL
    message: str = "ME{engine_id}: {signal} {severity} ({value}{unit})"

    @model_validator(mode="before")
    @classmethod
    def _derive_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            data = dict(data)
            op = data.get("op")
            op = op.value if isinstance(op, Comparison) else op
            data["id"] = f"{data.get('signal')}{op}{data.get('threshold')}"
        return data

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_by_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return Severity[value.upper()]
            except KeyError:
                raise ValueError(f"unknown severity {value!r}") from None
        return value

    @property
    def unit(self) -> str:
        return SIGNAL_UNITS.get(self.signal, "")

    def breached_by(self, observed: float) -> bool:
        if self.op is Comparison.GREATER_THAN:
            return observed > self.threshold
        return observed < self.threshold

    def render(self, *, vessel_id: str, engine_id: str, observed: float) -> str:
        return self.message.format(
            engine_id=engine_id,
            vessel_id=vessel_id,
            signal=self.signal,
            value=format_number(observed),
            threshold=format_number(self.threshold),
            unit=self.unit,
            severity=self.severity.name,
            rule_id=self.id,
        )


class EngineReading(BaseModel):
    """Signal values read from one physical engine."""

    model_config = ConfigDict(frozen=True)

    engine_id: str
    signals: dict[str, float | None] = Field(default_factory=dict)


class TelemetrySample(BaseModel):
    """One reading event for one vessel at one timestamp."""

    model_config = ConfigDict(frozen=True)

    vessel_id: str = Field(min_length=1)
    timestamp: float
    readings: tuple[EngineReading, ...] = ()
    # Display label for messages; falls back to vessel_id.
    vessel_name: str = ""

    @property
    def label(self) -> str:
        return self.vessel_name or self.vessel_id


class DedupKey(NamedTuple):
    """(vessel, engine, rule) tuple that collapses repeated violations."""

    vessel_id: str
    engine_id: str
    rule_id: str


class Violation(BaseModel):
    """One instance of a reading breaching a rule."""

    model_config = ConfigDict(frozen=True)

    vessel_id: str
    engine_id: str
    rule: Rule
    observed: float
    timestamp: float

    @property
    def key(self) -> DedupKey:
        return DedupKey(self.vessel_id, self.engine_id, self.rule.id)

    def describe(self) -> str:
        return self.rule.render(
            vessel_id=self.vessel_id,
            engine_id=self.engine_id,
            observed=self.observed,
        )


class Recipient(BaseModel):
    """A person who may receive alerts for a vessel."""

    id: str
    address: str
    role: str
    vessel_id: str | None = None


class RecipientDirectory(Protocol):
    """Resolves the people attached to a vessel."""

    async def resolve_recipients(self, vessel_id: str) -> list[Recipient]: ...


class DeliveryReceipt(BaseModel):
    """What a delivery channel reports for one send."""

    success: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> DeliveryReceipt:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> DeliveryReceipt:
        return cls(success=False, reason=reason)


class DeliveryResult(BaseModel):
    """Outcome of delivering one message to one recipient."""

    recipient_id: str
    address: str
    success: bool
    reason: str = ""


class OutcomeStatus(StrEnum):
    DISPATCHED = "dispatched"
    NO_RECIPIENTS = "no_recipients"
    NO_VIOLATIONS = "no_violations"


class DispatchOutcome(BaseModel):
    """Structured result of one pipeline run or dispatch call."""

    vessel_id: str
    status: OutcomeStatus
    violation_count: int = 0
    message: str = ""
    deliveries: list[DeliveryResult] = Field(default_factory=list)

    @property
    def delivered(self) -> int:
        return sum(1 for d in self.deliveries if d.success)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.deliveries if not d.success)
