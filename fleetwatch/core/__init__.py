"""Core module — config, logging, shared enums."""

from fleetwatch.core.config import Settings, get_settings, load_settings, reset_settings
from fleetwatch.core.logging import setup_logging
from fleetwatch.core.types import Severity

__all__ = [
    "Settings",
    "Severity",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
