"""Shared enums used across packages."""

from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    """Alert severity — ordered so comparisons work naturally."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3
