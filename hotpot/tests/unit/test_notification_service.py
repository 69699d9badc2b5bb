"""Tests for hotpot.services.notification_service: alerts, webhooks, history."""

from __future__ import annotations

import json

import httpx
import pytest

from hotpot.services.notification_service import NotificationService

WEBHOOK = "https://hooks.example.com/hotpot"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _client(status_code: int = 200, seen: list[httpx.Request] | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, text="nope" if status_code >= 400 else "ok")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ===================================================================
# send_admin_alert
# ===================================================================


class TestSendAdminAlert:
    async def test_log_only_without_webhook(self, caplog: pytest.LogCaptureFixture) -> None:
        service = NotificationService()
        await service.send_admin_alert("Sensor", "CH silent")
        assert "ALERT [Sensor] CH silent" in caplog.text
        assert [r.channel for r in service.history] == ["log"]

    async def test_posts_to_webhook(self) -> None:
        seen: list[httpx.Request] = []
        service = NotificationService(webhook_url=WEBHOOK, client=_client(seen=seen))
        await service.send_admin_alert("Sensor", "CH silent")

        assert len(seen) == 1
        body = json.loads(seen[0].content)
        assert body["subject"] == "Sensor"
        assert body["message"] == "CH silent"
        record = service.history[0]
        assert record.channel == "webhook"
        assert record.success is True

    async def test_webhook_failure_is_not_raised(self) -> None:
        service = NotificationService(webhook_url=WEBHOOK, client=_client(status_code=500))
        await service.send_admin_alert("Sensor", "CH silent")
        record = service.history[0]
        assert record.success is False
        assert record.error == "HTTP 500"


# ===================================================================
# send_webhook
# ===================================================================


class TestSendWebhook:
    async def test_raises_on_status(self) -> None:
        service = NotificationService(client=_client(status_code=404))
        with pytest.raises(httpx.HTTPStatusError):
            await service.send_webhook(WEBHOOK, {"subject": "x"})

    async def test_raises_on_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        service = NotificationService(client=client)
        with pytest.raises(httpx.ConnectError):
            await service.send_webhook(WEBHOOK, {"subject": "x"})
        assert service.history[0].error == "refused"


class TestHistory:
    async def test_history_is_bounded(self) -> None:
        service = NotificationService(history_limit=3)
        for i in range(5):
            await service.send_admin_alert(f"s{i}", "m")
        assert [r.subject for r in service.history] == ["s2", "s3", "s4"]

    async def test_clear(self) -> None:
        service = NotificationService()
        await service.send_admin_alert("s", "m")
        service.clear_history()
        assert service.history == []
