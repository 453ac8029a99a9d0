"""Record types for vessels, ports, monitoring reports, supply orders, and users.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from fleetwatch.alerting.types import SIGNAL_UNITS, EngineReading, TelemetrySample


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class WireModel(BaseModel):
    """Accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


class Record(WireModel):
    """Stored record. ``id`` is assigned by the store."""

    id: str = ""
    created_at: datetime.datetime = Field(default_factory=_utcnow)


# ── Vessels & ports ─────────────────────────────────────────────


class VesselStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class EngineSpec(WireModel):
    """Installed engine on a vessel."""

    engine_number: str = ""
    type: str = ""
    power: float | None = None
    fuel_capacity: float | None = None


class Vessel(Record):
    name: str = Field(min_length=1)
    type: str = ""  # ferry, speedboat, ...
    capacity: int | None = None
    year_built: int | None = None
    length: float | None = None
    beam: float | None = None
    draft: float | None = None
    speed: float | None = None
    engines: list[EngineSpec] = Field(default_factory=list)
    port: str = ""
    status: VesselStatus = VesselStatus.ACTIVE


class Port(Record):
    name: str = Field(min_length=1)
    country: str = ""
    location: str = ""
    facilities: list[str] = Field(default_factory=list)


# ── Monitoring reports ──────────────────────────────────────────


class ReportStatus(StrEnum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class EngineLog(WireModel):
    """Logged values for one engine. Every signal is optional."""

    engine_number: str = Field(min_length=1)
    rpm: float | None = None
    coolant_temp: float | None = None
    turbo_press: float | None = None
    engine_oil_press: float | None = None
    trans_oil_temp: float | None = None
    trans_oil_press: float | None = None
    exhaust_temp: float | None = None
    battery_voltage: float | None = None
    fuel_rate: float | None = None
    fuel_pressure: float | None = None
    running_hour: float | None = None

    def to_reading(self) -> EngineReading:
        signals = {
            name: value
            for name in SIGNAL_UNITS
            if (value := getattr(self, name)) is not None
        }
        return EngineReading(engine_id=self.engine_number, signals=signals)


class MonitoringReport(Record):
    vessel_id: str = Field(min_length=1)
    vessel_name: str = ""
    date: datetime.date | None = None
    time: str = ""
    route: str = ""
    speed: float | None = None
    weather: str = ""
    current: str = ""
    passengers: int | None = None
    engines: list[EngineLog] = Field(default_factory=list)
    status: ReportStatus = ReportStatus.NORMAL

    def to_sample(self) -> TelemetrySample:
        return TelemetrySample(
            vessel_id=self.vessel_id,
            vessel_name=self.vessel_name,
            timestamp=self.created_at.timestamp(),
            readings=tuple(e.to_reading() for e in self.engines),
        )


# ── Supply orders ───────────────────────────────────────────────


class OrderPriority(StrEnum):
    URGENT = "urgent"
    NORMAL = "normal"
    LOW = "low"


class OrderStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class OrderItem(WireModel):
    name: str
    quantity: float = 0
    unit: str = ""
    price: float = 0


class SupplyOrder(Record):
    vessel_id: str = ""
    vessel_name: str = ""
    items: list[OrderItem] = Field(default_factory=list)
    total_price: float | None = None
    priority: OrderPriority = OrderPriority.NORMAL
    status: OrderStatus = OrderStatus.PENDING
    requested_by: str = ""
    approved_by: str = ""
    assigned_to: str = ""  # user id
    whatsapp_number: str = ""
    notification_status: str = ""
    updated_at: datetime.datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _fill_total(self) -> SupplyOrder:
        if self.total_price is None:
            self.total_price = sum(i.quantity * i.price for i in self.items)
        return self


# ── Users ───────────────────────────────────────────────────────


class UserRole(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    CREW = "crew"


class User(Record):
    name: str = Field(min_length=1)
    email: str = ""
    role: UserRole = UserRole.CREW
    whatsapp_number: str = ""
    vessel_id: str | None = None
