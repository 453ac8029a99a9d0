"""Fleet records — typed models, in-memory storage, user directory."""

from fleetwatch.records.directory import UserDirectory
from fleetwatch.records.exceptions import RecordError, RecordNotFoundError
from fleetwatch.records.models import (
    EngineLog,
    EngineSpec,
    MonitoringReport,
    OrderItem,
    OrderPriority,
    OrderStatus,
    Port,
    ReportStatus,
    SupplyOrder,
    User,
    UserRole,
    Vessel,
    VesselStatus,
)
from fleetwatch.records.store import FleetRegistry, RecordStore

__all__ = [
    "EngineLog",
    "EngineSpec",
    "FleetRegistry",
    "MonitoringReport",
    "OrderItem",
    "OrderPriority",
    "OrderStatus",
    "Port",
    "RecordError",
    "RecordNotFoundError",
    "RecordStore",
    "ReportStatus",
    "SupplyOrder",
    "User",
    "UserDirectory",
    "UserRole",
    "Vessel",
    "VesselStatus",
]
