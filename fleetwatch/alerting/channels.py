"""Delivery channels — Fonnte WhatsApp gateway and a log-only fallback."""

from __future__ import annotations

import abc

import aiohttp
import structlog

from fleetwatch.alerting.types import DeliveryReceipt
from fleetwatch.core.config import FonnteConfig

logger = structlog.get_logger(__name__)


class DeliveryChannel(abc.ABC):
    """Base class for message delivery channels.

    Retry and backoff, where wanted, belong to the channel. Callers treat a
    failed receipt as final.
    """

    @abc.abstractmethod
    async def send(self, address: str, message: str) -> DeliveryReceipt:
        """Deliver *message* to *address*."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class FonnteChannel(DeliveryChannel):
    """Delivers WhatsApp messages through the Fonnte send API."""

    def __init__(self, config: FonnteConfig) -> None:
        self._token = config.api_key.get_secret_value()
        self._url = config.url
        self._country_code = config.country_code
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def send(self, address: str, message: str) -> DeliveryReceipt:
        payload = {
            "target": address,
            "message": message,
            "countryCode": self._country_code,
        }
        headers = {"Authorization": self._token}

        try:
            session = self._get_session()
            async with session.post(self._url, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.warning(
                        "fonnte_send_failed",
                        status=resp.status,
                        body=body[:200],
                    )
                    return DeliveryReceipt.failed(f"HTTP {resp.status}")
                # Fonnte may label JSON as text/html; parse regardless.
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None
        except Exception as exc:
            logger.exception("fonnte_send_error", target=address)
            return DeliveryReceipt.failed(f"{type(exc).__name__}: {exc}")

        # Fonnte answers 200 with {"status": false, "reason": ...} on rejects.
        if isinstance(data, dict) and data.get("status") is False:
            reason = str(data.get("reason") or "rejected by gateway")
            logger.warning("fonnte_send_rejected", target=address, reason=reason)
            return DeliveryReceipt.failed(reason)
        return DeliveryReceipt.ok()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class LogChannel(DeliveryChannel):
    """Writes messages to the log instead of sending them. Always succeeds."""

    def __init__(self) -> None:
        self.sent: int = 0

    async def send(self, address: str, message: str) -> DeliveryReceipt:
        self.sent += 1
        logger.info("message_logged", target=address, message=message)
        return DeliveryReceipt.ok()

    async def close(self) -> None:
        return None
