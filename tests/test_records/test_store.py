"""Tests for RecordStore and FleetRegistry."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fleetwatch.records.exceptions import RecordError, RecordNotFoundError
from fleetwatch.records.models import MonitoringReport, Vessel, VesselStatus
from fleetwatch.records.store import FleetRegistry, RecordStore


@pytest.fixture()
def vessels() -> RecordStore[Vessel]:
    return RecordStore(Vessel)


class TestCreateGet:
    def test_create_assigns_id(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(name="KM A"))
        assert len(stored.id) == 32
        assert vessels.get(stored.id) == stored

    def test_ids_unique(self, vessels: RecordStore[Vessel]) -> None:
        a = vessels.create(Vessel(name="KM A"))
        b = vessels.create(Vessel(name="KM A"))
        assert a.id != b.id
        assert len(vessels) == 2

    def test_create_ignores_supplied_id(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(id="mine", name="KM A"))
        assert stored.id != "mine"

    def test_get_missing_raises(self, vessels: RecordStore[Vessel]) -> None:
        with pytest.raises(RecordNotFoundError, match="Vessel 'nope' not found") as info:
            vessels.get("nope")
        assert info.value.kind == "Vessel"
        assert isinstance(info.value, RecordError)

    def test_find_missing_none(self, vessels: RecordStore[Vessel]) -> None:
        assert vessels.find("nope") is None


class TestList:
    def test_creation_order(self, vessels: RecordStore[Vessel]) -> None:
        for name in ("A", "B", "C"):
            vessels.create(Vessel(name=name))
        assert [v.name for v in vessels.list()] == ["A", "B", "C"]
        assert [v.name for v in vessels.list(newest_first=True)] == ["C", "B", "A"]

    def test_predicate_and_limit(self) -> None:
        reports: RecordStore[MonitoringReport] = RecordStore(MonitoringReport)
        for i in range(5):
            reports.create(MonitoringReport(vessel_id="v1" if i % 2 == 0 else "v2", route=str(i)))
        found = reports.list(lambda r: r.vessel_id == "v1", newest_first=True, limit=2)
        assert [r.route for r in found] == ["4", "2"]

    def test_latest(self) -> None:
        reports: RecordStore[MonitoringReport] = RecordStore(MonitoringReport)
        assert reports.latest() is None
        reports.create(MonitoringReport(vessel_id="v1", route="first"))
        reports.create(MonitoringReport(vessel_id="v1", route="second"))
        reports.create(MonitoringReport(vessel_id="v2", route="other"))
        latest = reports.latest(lambda r: r.vessel_id == "v1")
        assert latest is not None
        assert latest.route == "second"


class TestUpdateDelete:
    def test_partial_update(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(name="KM A", capacity=100))
        updated = vessels.update(stored.id, {"status": "maintenance"})
        assert updated.status == VesselStatus.MAINTENANCE
        assert updated.capacity == 100
        assert vessels.get(stored.id).status == VesselStatus.MAINTENANCE

    def test_update_cannot_change_identity(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(name="KM A"))
        updated = vessels.update(stored.id, {"id": "hijack", "created_at": "2000-01-01T00:00:00Z"})
        assert updated.id == stored.id
        assert updated.created_at == stored.created_at

    def test_invalid_update_rejected(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(name="KM A"))
        with pytest.raises(ValidationError):
            vessels.update(stored.id, {"status": "sunk"})
        assert vessels.get(stored.id).status == VesselStatus.ACTIVE

    def test_update_missing_raises(self, vessels: RecordStore[Vessel]) -> None:
        with pytest.raises(RecordNotFoundError):
            vessels.update("nope", {"name": "x"})

    def test_delete(self, vessels: RecordStore[Vessel]) -> None:
        stored = vessels.create(Vessel(name="KM A"))
        vessels.delete(stored.id)
        assert len(vessels) == 0
        with pytest.raises(RecordNotFoundError):
            vessels.delete(stored.id)


class TestRegistry:
    def test_one_store_per_kind(self) -> None:
        registry = FleetRegistry()
        assert registry.vessels.kind == "Vessel"
        assert registry.ports.kind == "Port"
        assert registry.reports.kind == "MonitoringReport"
        assert registry.orders.kind == "SupplyOrder"
        assert registry.users.kind == "User"
