"""Admin alert delivery for Hotpot.

Alerts are always logged. When a webhook URL is configured they are also
POSTed there as JSON, which is how a mail or chat relay gets hold of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_WEBHOOK_TIMEOUT = 10.0  # seconds


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class NotificationRecord:
    """Record of a sent alert (for auditing)."""

    subject: str
    message: str
    channel: str
    sent_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    success: bool = True
    error: str | None = None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class NotificationService:
    """Send alerts to the installation's administrator.

    Usage::

        service = NotificationService(webhook_url="https://hooks.example.com/abc")
        await service.send_admin_alert("Hotpot sensor", "CH sensor silent for 10m")
    """

    def __init__(
        self,
        *,
        webhook_url: str | None = None,
        history_limit: int = 100,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._webhook_url = str(webhook_url) if webhook_url else None
        self._history: list[NotificationRecord] = []
        self._history_limit = history_limit
        self._client = client

    async def send_admin_alert(self, subject: str, message: str) -> None:
        """Deliver an alert. Delivery failures are logged and recorded, never raised."""

        logger.warning("ALERT [%s] %s", subject, message)
        if not self._webhook_url:
            self._record(NotificationRecord(subject=subject, message=message, channel="log"))
            return

        try:
            await self.send_webhook(
                self._webhook_url,
                {
                    "subject": subject,
                    "message": message,
                    "sent_at": datetime.now(UTC).isoformat(),
                },
            )
        except httpx.HTTPError:
            logger.warning("Could not deliver alert %r via webhook", subject)

    async def send_webhook(self, url: str, payload: dict[str, Any]) -> None:
        """POST a JSON payload to an external webhook URL.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses.
            httpx.HTTPError: On network failures.
        """
        record = NotificationRecord(
            subject=str(payload.get("subject", "webhook")),
            message=str(payload.get("message", payload))[:200],
            channel="webhook",
        )

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=_WEBHOOK_TIMEOUT) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            logger.info("Webhook delivered to %s (status %d)", url, response.status_code)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Webhook to %s failed with status %d: %s",
                url,
                exc.response.status_code,
                exc.response.text[:200],
            )
            record.success = False
            record.error = f"HTTP {exc.response.status_code}"
            raise
        except httpx.HTTPError as exc:
            logger.error("Webhook connection to %s failed: %s", url, exc)
            record.success = False
            record.error = str(exc)
            raise
        finally:
            self._record(record)

    # ------------------------------------------------------------------
    # History / introspection
    # ------------------------------------------------------------------

    @property
    def history(self) -> list[NotificationRecord]:
        """Return a copy of the recent alert history."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def _record(self, record: NotificationRecord) -> None:
        """Append a record to the history ring buffer."""
        self._history.append(record)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]


__all__ = ["NotificationRecord", "NotificationService"]
