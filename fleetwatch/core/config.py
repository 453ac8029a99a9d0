"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Thresholds the fleet has always alerted on. Real deployments override these
# per engine model in settings.yaml.
DEFAULT_RULES: list[dict[str, Any]] = [
    {
        "id": "coolant_temp_high",
        "signal": "coolant_temp",
        "op": ">",
        "threshold": 95,
        "severity": "CRITICAL",
        "message": "ME{engine_id}: Coolant temperature CRITICAL ({value}{unit})",
    },
    {
        "id": "engine_oil_press_low",
        "signal": "engine_oil_press",
        "op": "<",
        "threshold": 300,
        "severity": "CRITICAL",
        "message": "ME{engine_id}: Engine Oil Pressure LOW ({value} {unit})",
    },
    {
        "id": "exhaust_temp_high",
        "signal": "exhaust_temp",
        "op": ">",
        "threshold": 420,
        "severity": "CRITICAL",
        "message": "ME{engine_id}: Exhaust Temperature CRITICAL ({value}{unit})",
    },
    {
        "id": "battery_voltage_low",
        "signal": "battery_voltage",
        "op": "<",
        "threshold": 24,
        "severity": "CRITICAL",
        "message": "ME{engine_id}: Battery Voltage LOW ({value}{unit})",
    },
]


class AlertingConfig(BaseModel):
    """Critical-condition alerting configuration."""

    cooldown_secs: float = 1800.0
    delivery_timeout_secs: float = 10.0
    eligible_roles: list[str] = ["manager"]
    # Raw rule mappings; validated by build_rule_set() at startup.
    rules: list[dict[str, Any]] = Field(
        default_factory=lambda: [dict(r) for r in DEFAULT_RULES],
    )


class FonnteConfig(BaseModel):
    """Fonnte WhatsApp gateway configuration."""

    enabled: bool = False
    api_key: SecretStr = SecretStr("")
    url: str = "https://api.fonnte.com/send"
    country_code: str = "62"


class ServerConfig(BaseModel):
    """HTTP API server configuration."""

    host: str = "0.0.0.0"
    port: int = 5000


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    # JSON-lines audit file for the alert_log stream; empty disables it.
    alert_log_file: str = ""


class Settings(BaseModel):
    """Root settings container."""

    alerting: AlertingConfig = AlertingConfig()
    fonnte: FonnteConfig = FonnteConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
