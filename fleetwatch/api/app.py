"""JSON HTTP API for fleet records and telemetry ingestion.

Runs as an ``aiohttp`` web server. Every response uses the envelope
``{"success": true, "data": ...}`` or ``{"success": false, "error": "..."}``.
``POST /api/monitoring`` is the ingestion boundary: the body is validated into
a typed report before anything reaches the alerting pipeline.
"""

from __future__ import annotations

import datetime
import json
from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from fleetwatch.alerting.formatters import batch_severity
from fleetwatch.alerting.pipeline import AlertingPipeline
from fleetwatch.core.types import Severity
from fleetwatch.orders.notifier import OrderNotifier, notification_status
from fleetwatch.records.exceptions import RecordNotFoundError
from fleetwatch.records.models import (
    MonitoringReport,
    OrderStatus,
    Port,
    ReportStatus,
    SupplyOrder,
    User,
    Vessel,
)
from fleetwatch.records.store import FleetRegistry

logger = structlog.get_logger(__name__)

DEFAULT_REPORT_LIMIT = 50

_REPORT_STATUS: dict[Severity, ReportStatus] = {
    Severity.INFO: ReportStatus.NORMAL,
    Severity.WARNING: ReportStatus.WARNING,
    Severity.CRITICAL: ReportStatus.CRITICAL,
}


class BadRequestError(Exception):
    """Request body or query could not be used."""


# ── Envelope & middleware ───────────────────────────────────────


def _ok(data: Any, status: int = 200, **extra: Any) -> web.Response:
    return web.json_response({"success": True, "data": data, **extra}, status=status)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )


@web.middleware
async def _error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Map domain errors onto the JSON error envelope."""
    try:
        return await handler(request)
    except ValidationError as exc:
        return _error(_validation_message(exc), 400)
    except BadRequestError as exc:
        return _error(str(exc), 400)
    except RecordNotFoundError as exc:
        return _error(str(exc), 404)
    except web.HTTPException:
        raise
    except Exception as exc:
        logger.exception("api_unhandled_error", path=request.path, method=request.method)
        return _error(str(exc) or type(exc).__name__, 500)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise BadRequestError(f"invalid JSON body: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise BadRequestError("JSON body must be an object")
    return body


def _snake_keys(body: dict[str, Any]) -> dict[str, Any]:
    return {to_snake(k): v for k, v in body.items()}


def _wire(records: list[Any]) -> list[dict[str, object]]:
    return [r.to_wire() for r in records]


def _registry(request: web.Request) -> FleetRegistry:
    return request.app["registry"]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def report_status(severity: Severity | None) -> ReportStatus:
    """Report status for the highest severity seen, NORMAL when none."""
    if severity is None:
        return ReportStatus.NORMAL
    return _REPORT_STATUS[severity]


# ── Vessels ─────────────────────────────────────────────────────


async def _create_vessel(request: web.Request) -> web.Response:
    vessel = Vessel.model_validate(await _read_json(request))
    stored = _registry(request).vessels.create(vessel)
    return _ok(stored.to_wire(), status=201)


async def _list_vessels(request: web.Request) -> web.Response:
    return _ok(_wire(_registry(request).vessels.list()))


async def _get_vessel(request: web.Request) -> web.Response:
    vessel = _registry(request).vessels.get(request.match_info["vessel_id"])
    return _ok(vessel.to_wire())


async def _update_vessel(request: web.Request) -> web.Response:
    changes = _snake_keys(await _read_json(request))
    vessel = _registry(request).vessels.update(request.match_info["vessel_id"], changes)
    return _ok(vessel.to_wire())


async def _delete_vessel(request: web.Request) -> web.Response:
    _registry(request).vessels.delete(request.match_info["vessel_id"])
    return web.json_response({"success": True, "message": "Vessel deleted"})


# ── Ports ───────────────────────────────────────────────────────


async def _create_port(request: web.Request) -> web.Response:
    port = Port.model_validate(await _read_json(request))
    return _ok(_registry(request).ports.create(port).to_wire(), status=201)


async def _list_ports(request: web.Request) -> web.Response:
    return _ok(_wire(_registry(request).ports.list()))


# ── Monitoring (telemetry ingestion) ────────────────────────────


async def _create_report(request: web.Request) -> web.Response:
    registry = _registry(request)
    pipeline: AlertingPipeline = request.app["pipeline"]

    report = MonitoringReport.model_validate(await _read_json(request))
    if not report.vessel_name:
        vessel = registry.vessels.find(report.vessel_id)
        if vessel is not None:
            report = report.model_copy(update={"vessel_name": vessel.name})

    stored = registry.reports.create(report)
    violations, outcome = await pipeline.process_with_violations(stored.to_sample())
    stored = registry.reports.update(
        stored.id, {"status": report_status(batch_severity(violations))}
    )
    logger.info(
        "monitoring_report_ingested",
        report_id=stored.id,
        vessel_id=stored.vessel_id,
        status=stored.status.value,
        alert=outcome.status.value,
    )
    return _ok(stored.to_wire(), status=201, alert=outcome.model_dump(mode="json"))


def _parse_limit(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_REPORT_LIMIT
    try:
        return int(raw)
    except ValueError:
        raise BadRequestError(f"limit must be an integer, got {raw!r}") from None


async def _list_reports(request: web.Request) -> web.Response:
    vessel_id = request.query.get("vesselId")
    limit = _parse_limit(request.query.get("limit"))
    reports = _registry(request).reports.list(
        (lambda r: r.vessel_id == vessel_id) if vessel_id else None,
        newest_first=True,
        limit=limit,
    )
    return _ok(_wire(reports))


async def _latest_report(request: web.Request) -> web.Response:
    vessel_id = request.match_info["vessel_id"]
    report = _registry(request).reports.latest(lambda r: r.vessel_id == vessel_id)
    return _ok(report.to_wire() if report is not None else None)


# ── Supply orders ───────────────────────────────────────────────


async def _create_order(request: web.Request) -> web.Response:
    registry = _registry(request)
    notifier: OrderNotifier = request.app["order_notifier"]

    order = registry.orders.create(SupplyOrder.model_validate(await _read_json(request)))
    result = await notifier.notify_created(order)
    order = registry.orders.update(
        order.id, {"notification_status": notification_status(result)}
    )
    return _ok(order.to_wire(), status=201)


async def _list_orders(request: web.Request) -> web.Response:
    vessel_id = request.query.get("vesselId")
    status = request.query.get("status")

    def _matches(order: SupplyOrder) -> bool:
        if vessel_id and order.vessel_id != vessel_id:
            return False
        return not status or order.status.value == status

    return _ok(_wire(_registry(request).orders.list(_matches, newest_first=True)))


async def _update_order_status(request: web.Request) -> web.Response:
    registry = _registry(request)
    notifier: OrderNotifier = request.app["order_notifier"]

    body = await _read_json(request)
    try:
        status = OrderStatus(body.get("status"))
    except ValueError:
        raise BadRequestError(f"unknown order status {body.get('status')!r}") from None

    order = registry.orders.update(
        request.match_info["order_id"], {"status": status, "updated_at": _utcnow()}
    )
    result = await notifier.notify_status(order)
    order = registry.orders.update(
        order.id, {"notification_status": notification_status(result)}
    )
    return _ok(order.to_wire())


# ── Users ───────────────────────────────────────────────────────


async def _create_user(request: web.Request) -> web.Response:
    user = User.model_validate(await _read_json(request))
    return _ok(_registry(request).users.create(user).to_wire(), status=201)


async def _list_users(request: web.Request) -> web.Response:
    return _ok(_wire(_registry(request).users.list()))


# ── App wiring ──────────────────────────────────────────────────


def create_web_app(
    registry: FleetRegistry,
    pipeline: AlertingPipeline,
    order_notifier: OrderNotifier,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[_error_middleware])
    app["registry"] = registry
    app["pipeline"] = pipeline
    app["order_notifier"] = order_notifier

    app.router.add_post("/api/vessels", _create_vessel)
    app.router.add_get("/api/vessels", _list_vessels)
    app.router.add_get("/api/vessels/{vessel_id}", _get_vessel)
    app.router.add_put("/api/vessels/{vessel_id}", _update_vessel)
    app.router.add_delete("/api/vessels/{vessel_id}", _delete_vessel)

    app.router.add_post("/api/ports", _create_port)
    app.router.add_get("/api/ports", _list_ports)

    app.router.add_post("/api/monitoring", _create_report)
    app.router.add_get("/api/monitoring", _list_reports)
    app.router.add_get("/api/monitoring/latest/{vessel_id}", _latest_report)

    app.router.add_post("/api/orders", _create_order)
    app.router.add_get("/api/orders", _list_orders)
    app.router.add_put("/api/orders/{order_id}/status", _update_order_status)

    app.router.add_post("/api/users", _create_user)
    app.router.add_get("/api/users", _list_users)
    return app


async def start_api_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 5000,
) -> web.AppRunner:
    """Start serving *app*. Returns the runner for cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("api_server_started", host=host, port=port)
    return runner
