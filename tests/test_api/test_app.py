"""Tests for the HTTP API — record routes and telemetry ingestion."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest
from aiohttp.test_utils import TestClient, TestServer

from fleetwatch.alerting.channels import DeliveryChannel
from fleetwatch.alerting.factory import create_alerting_stack
from fleetwatch.alerting.types import DeliveryReceipt
from fleetwatch.api.app import create_web_app, report_status
from fleetwatch.core.config import Settings
from fleetwatch.core.types import Severity
from fleetwatch.orders.notifier import OrderNotifier
from fleetwatch.records.directory import UserDirectory
from fleetwatch.records.models import ReportStatus
from fleetwatch.records.store import FleetRegistry

# ── Helpers ─────────────────────────────────────────────────────


class RecordingChannel(DeliveryChannel):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, address: str, message: str) -> DeliveryReceipt:
        self.sent.append((address, message))
        return DeliveryReceipt.ok()

    async def close(self) -> None:
        pass


@dataclass
class Api:
    client: TestClient
    registry: FleetRegistry
    channel: RecordingChannel


@pytest.fixture()
async def api() -> AsyncIterator[Api]:
    registry = FleetRegistry()
    channel = RecordingChannel()
    pipeline, _ = create_alerting_stack(Settings(), UserDirectory(registry), channel=channel)
    app = create_web_app(registry, pipeline, OrderNotifier(channel, registry))
    async with TestClient(TestServer(app)) as client:
        yield Api(client=client, registry=registry, channel=channel)


async def _post(api: Api, path: str, body: object) -> tuple[int, dict]:
    resp = await api.client.post(path, json=body)
    return resp.status, await resp.json()


async def _get(api: Api, path: str) -> tuple[int, dict]:
    resp = await api.client.get(path)
    return resp.status, await resp.json()


async def _vessel_with_manager(api: Api) -> str:
    _, vessel = await _post(api, "/api/vessels", {"name": "KM Bahari", "type": "ferry"})
    vessel_id = vessel["data"]["id"]
    await _post(
        api,
        "/api/users",
        {"name": "Budi", "role": "manager", "whatsappNumber": "0811", "vesselId": vessel_id},
    )
    return vessel_id


def _report(vessel_id: str, **engine: object) -> dict[str, object]:
    return {
        "vesselId": vessel_id,
        "route": "Merak - Bakauheni",
        "engines": [{"engineNumber": "1", **engine}],
    }


_HOT = {"coolantTemp": 97, "engineOilPress": 310, "exhaustTemp": 400, "batteryVoltage": 26}


# ── Vessels ─────────────────────────────────────────────────────


class TestVessels:
    async def test_crud(self, api: Api) -> None:
        status, body = await _post(api, "/api/vessels", {"name": "KM A", "yearBuilt": 2010})
        assert status == 201
        assert body["success"] is True
        vessel_id = body["data"]["id"]
        assert body["data"]["yearBuilt"] == 2010
        assert body["data"]["status"] == "active"

        status, body = await _get(api, f"/api/vessels/{vessel_id}")
        assert status == 200
        assert body["data"]["name"] == "KM A"

        resp = await api.client.put(f"/api/vessels/{vessel_id}", json={"status": "maintenance", "yearBuilt": 2011})
        body = await resp.json()
        assert resp.status == 200
        assert body["data"]["status"] == "maintenance"
        assert body["data"]["yearBuilt"] == 2011

        status, body = await _get(api, "/api/vessels")
        assert [v["id"] for v in body["data"]] == [vessel_id]

        resp = await api.client.delete(f"/api/vessels/{vessel_id}")
        assert resp.status == 200
        assert (await resp.json()) == {"success": True, "message": "Vessel deleted"}
        assert len(api.registry.vessels) == 0

    async def test_missing_vessel_404(self, api: Api) -> None:
        status, body = await _get(api, "/api/vessels/nope")
        assert status == 404
        assert body["success"] is False
        assert "not found" in body["error"]

    async def test_invalid_body_400(self, api: Api) -> None:
        status, body = await _post(api, "/api/vessels", {"type": "ferry"})
        assert status == 400
        assert body["success"] is False
        assert "name" in body["error"]

    async def test_bad_json_400(self, api: Api) -> None:
        resp = await api.client.post(
            "/api/vessels", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert "invalid JSON" in (await resp.json())["error"]

    async def test_non_object_body_400(self, api: Api) -> None:
        status, body = await _post(api, "/api/vessels", ["KM A"])
        assert status == 400
        assert body["error"] == "JSON body must be an object"


# ── Ports & users ───────────────────────────────────────────────


class TestPortsAndUsers:
    async def test_ports(self, api: Api) -> None:
        status, _ = await _post(
            api, "/api/ports", {"name": "Merak", "country": "Indonesia", "facilities": ["fuel"]}
        )
        assert status == 201
        _, body = await _get(api, "/api/ports")
        assert body["data"][0]["facilities"] == ["fuel"]

    async def test_users(self, api: Api) -> None:
        status, body = await _post(api, "/api/users", {"name": "Sari", "role": "crew"})
        assert status == 201
        assert body["data"]["role"] == "crew"
        _, body = await _get(api, "/api/users")
        assert len(body["data"]) == 1

    async def test_user_bad_role(self, api: Api) -> None:
        status, _ = await _post(api, "/api/users", {"name": "Sari", "role": "captain"})
        assert status == 400


# ── Monitoring ingestion ────────────────────────────────────────


class TestMonitoring:
    async def test_critical_report_alerts_manager(self, api: Api) -> None:
        vessel_id = await _vessel_with_manager(api)

        status, body = await _post(api, "/api/monitoring", _report(vessel_id, **_HOT))

        assert status == 201
        assert body["data"]["status"] == "critical"
        assert body["data"]["vesselName"] == "KM Bahari"
        assert body["alert"]["status"] == "dispatched"
        assert body["alert"]["violation_count"] == 1
        assert api.channel.sent == [
            ("0811", "🚨 ALERT - KM Bahari\n⚠️ ME1: Coolant temperature CRITICAL (97°C)")
        ]

    async def test_repeat_report_within_window_not_resent(self, api: Api) -> None:
        vessel_id = await _vessel_with_manager(api)
        await _post(api, "/api/monitoring", _report(vessel_id, **_HOT))
        status, body = await _post(api, "/api/monitoring", _report(vessel_id, **_HOT))

        assert status == 201
        assert body["data"]["status"] == "critical"
        assert body["alert"]["status"] == "no_violations"
        assert len(api.channel.sent) == 1
        assert len(api.registry.reports) == 2

    async def test_normal_report(self, api: Api) -> None:
        vessel_id = await _vessel_with_manager(api)
        status, body = await _post(
            api, "/api/monitoring", _report(vessel_id, coolantTemp=85, batteryVoltage=26)
        )
        assert status == 201
        assert body["data"]["status"] == "normal"
        assert body["alert"]["status"] == "no_violations"
        assert api.channel.sent == []

    async def test_no_manager_reports_no_recipients(self, api: Api) -> None:
        status, body = await _post(api, "/api/monitoring", _report("unregistered", **_HOT))
        assert status == 201
        assert body["alert"]["status"] == "no_recipients"
        assert api.channel.sent == []

    async def test_missing_vessel_id_rejected(self, api: Api) -> None:
        status, body = await _post(
            api, "/api/monitoring", {"engines": [{"engineNumber": "1", "coolantTemp": 120}]}
        )
        assert status == 400
        assert "vesselId" in body["error"]
        assert len(api.registry.reports) == 0
        assert api.channel.sent == []

    async def test_list_and_latest(self, api: Api) -> None:
        for route in ("a", "b", "c"):
            await _post(api, "/api/monitoring", {"vesselId": "v1", "route": route})
        await _post(api, "/api/monitoring", {"vesselId": "v2", "route": "x"})

        _, body = await _get(api, "/api/monitoring?vesselId=v1&limit=2")
        assert [r["route"] for r in body["data"]] == ["c", "b"]

        _, body = await _get(api, "/api/monitoring")
        assert len(body["data"]) == 4

        _, body = await _get(api, "/api/monitoring/latest/v1")
        assert body["data"]["route"] == "c"

        _, body = await _get(api, "/api/monitoring/latest/v9")
        assert body["data"] is None

    async def test_bad_limit(self, api: Api) -> None:
        status, _ = await _get(api, "/api/monitoring?limit=ten")
        assert status == 400


# ── Orders ──────────────────────────────────────────────────────


class TestOrders:
    async def test_create_notifies_assignee(self, api: Api) -> None:
        _, user = await _post(
            api, "/api/users", {"name": "Budi", "role": "manager", "whatsappNumber": "0811"}
        )
        status, body = await _post(
            api,
            "/api/orders",
            {
                "vesselId": "v1",
                "vesselName": "KM Bahari",
                "items": [{"name": "Oil", "quantity": 10, "unit": "L", "price": 150000}],
                "priority": "urgent",
                "assignedTo": user["data"]["id"],
            },
        )
        assert status == 201
        assert body["data"]["totalPrice"] == 1500000
        assert body["data"]["notificationStatus"] == "sent"
        address, message = api.channel.sent[0]
        assert address == "0811"
        assert "Total: Rp 1.500.000" in message
        assert "Priority: URGENT" in message

    async def test_create_without_assignee_skipped(self, api: Api) -> None:
        status, body = await _post(api, "/api/orders", {"vesselId": "v1"})
        assert status == 201
        assert body["data"]["notificationStatus"] == "skipped"
        assert api.channel.sent == []

    async def test_list_filters(self, api: Api) -> None:
        await _post(api, "/api/orders", {"vesselId": "v1", "requestedBy": "a"})
        await _post(api, "/api/orders", {"vesselId": "v2", "requestedBy": "b"})
        _, third = await _post(api, "/api/orders", {"vesselId": "v1", "requestedBy": "c"})
        await api.client.put(
            f"/api/orders/{third['data']['id']}/status", json={"status": "approved"}
        )

        _, body = await _get(api, "/api/orders?vesselId=v1")
        assert [o["requestedBy"] for o in body["data"]] == ["c", "a"]

        _, body = await _get(api, "/api/orders?status=approved")
        assert [o["requestedBy"] for o in body["data"]] == ["c"]

    async def test_status_update_notifies_contact(self, api: Api) -> None:
        _, order = await _post(
            api,
            "/api/orders",
            {"vesselId": "v1", "vesselName": "KM Bahari", "totalPrice": 250000,
             "whatsappNumber": "0899"},
        )
        order_id = order["data"]["id"]

        resp = await api.client.put(f"/api/orders/{order_id}/status", json={"status": "in_transit"})
        body = await resp.json()

        assert resp.status == 200
        assert body["data"]["status"] == "in_transit"
        assert body["data"]["notificationStatus"] == "sent"
        assert body["data"]["updatedAt"] >= body["data"]["createdAt"]
        assert api.channel.sent[-1] == (
            "0899",
            "✅ ORDER UPDATE - KM Bahari\nStatus: IN_TRANSIT\nTotal: Rp 250.000",
        )

    async def test_status_update_unknown_status(self, api: Api) -> None:
        _, order = await _post(api, "/api/orders", {"vesselId": "v1"})
        resp = await api.client.put(
            f"/api/orders/{order['data']['id']}/status", json={"status": "lost"}
        )
        assert resp.status == 400

    async def test_status_update_unknown_order(self, api: Api) -> None:
        resp = await api.client.put("/api/orders/nope/status", json={"status": "approved"})
        assert resp.status == 404


# ── Report status mapping ───────────────────────────────────────


class TestReportStatus:
    def test_mapping(self) -> None:
        assert report_status(None) == ReportStatus.NORMAL
        assert report_status(Severity.INFO) == ReportStatus.NORMAL
        assert report_status(Severity.WARNING) == ReportStatus.WARNING
        assert report_status(Severity.CRITICAL) == ReportStatus.CRITICAL
