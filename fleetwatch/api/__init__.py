"""HTTP API — record routes and telemetry ingestion."""

from fleetwatch.api.app import create_web_app, report_status, start_api_server

__all__ = ["create_web_app", "report_status", "start_api_server"]
