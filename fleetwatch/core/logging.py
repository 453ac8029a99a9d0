"""Structured logging setup using structlog.

Everything goes through the stdlib root logger so aiohttp's own records and
fleetwatch's structlog events share one handler and one renderer. The
``alert_log`` stream can additionally be written to a JSON-lines file that
serves as an audit trail of every alert batch sent.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

from fleetwatch.core.config import get_settings

ALERT_LOGGER_NAME = "alert_log"

# Chatty third-party loggers kept at WARNING unless running at DEBUG.
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _make_formatter(
    pre_chain: list[structlog.types.Processor], json_output: bool
) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if json_output:
        # Alert text carries emoji and unit symbols; keep them readable.
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def _attach_alert_file(path: str, pre_chain: list[structlog.types.Processor]) -> None:
    alert_logger = logging.getLogger(ALERT_LOGGER_NAME)
    for old in [h for h in alert_logger.handlers if isinstance(h, logging.FileHandler)]:
        alert_logger.removeHandler(old)
        old.close()
    if not path:
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(_make_formatter(pre_chain, json_output=True))
    alert_logger.addHandler(file_handler)


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer format override ("json" or "console"). Uses config if None.
    """
    config = get_settings().logging
    log_level = getattr(logging, (level or config.level).upper(), logging.INFO)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_make_formatter(pre_chain, json_output=(fmt or config.format) == "json"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(log_level)

    _attach_alert_file(config.alert_log_file, pre_chain)

    noisy_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
