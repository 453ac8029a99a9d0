"""Alerting engine exceptions."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for alerting errors."""


class RuleConfigError(AlertingError):
    """The configured rule set is malformed. Fatal at startup."""
