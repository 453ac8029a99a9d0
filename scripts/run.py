#!/usr/bin/env python3
"""Main entrypoint — wires the alerting stack and serves the fleet API.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from fleetwatch.alerting.exceptions import RuleConfigError
from fleetwatch.alerting.factory import create_alerting_stack
from fleetwatch.api.app import create_web_app, start_api_server
from fleetwatch.core.config import load_settings
from fleetwatch.core.logging import setup_logging
from fleetwatch.orders.notifier import OrderNotifier
from fleetwatch.records.directory import UserDirectory
from fleetwatch.records.store import FleetRegistry

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the API server and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    registry = FleetRegistry()

    # ── Alerting stack ───────────────────────────────────────────
    try:
        pipeline, channel = create_alerting_stack(settings, UserDirectory(registry))
    except RuleConfigError as exc:
        logger.error("rule_config_invalid", error=str(exc))
        print(f"Invalid alerting rules: {exc}", file=sys.stderr)
        return 1

    logger.info(
        "fleetwatch_starting",
        channel=type(channel).__name__,
        cooldown_secs=settings.alerting.cooldown_secs,
        eligible_roles=settings.alerting.eligible_roles,
    )

    order_notifier = OrderNotifier(
        channel=channel,
        registry=registry,
        delivery_timeout_secs=settings.alerting.delivery_timeout_secs,
    )

    # ── API server ───────────────────────────────────────────────
    app = create_web_app(registry, pipeline, order_notifier)
    runner = await start_api_server(app, host=settings.server.host, port=settings.server.port)

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("fleetwatch_shutting_down")
    await runner.cleanup()
    await channel.close()

    logger.info(
        "fleetwatch_stopped",
        vessels=len(registry.vessels),
        reports=len(registry.reports),
        orders=len(registry.orders),
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the fleet monitoring API with threshold alerting.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
