"""Tests for alert deduplication, fan-out and the webhook channel."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from kubeincident.models.alerts import IncidentAlert
from kubeincident.models.config import NotificationConfig
from kubeincident.models.incidents import Incident, IncidentState
from kubeincident.notifications import (
    AlertDeduplicator,
    NotificationChannel,
    NotificationDispatcher,
    WebhookNotificationChannel,
    build_notification_dispatcher,
)
from kubeincident.notifications.webhook import build_payload
from tests.factories import make_event


def _alert(state: IncidentState = IncidentState.ONGOING, incident_id: str = "incident:api:default") -> IncidentAlert:
    incident = Incident(id=incident_id, release_name="api", namespace="default", state=state)
    transition = "resolved" if state == IncidentState.RESOLVED else "opened"
    return IncidentAlert.from_incident(incident, make_event(), transition)


class _RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "recording", result: bool | Exception = True) -> None:
        self._name = name
        self._result = result
        self.sent: list[IncidentAlert] = []

    @property
    def channel_name(self) -> str:
        return self._name

    async def send(self, alert: IncidentAlert) -> bool:
        self.sent.append(alert)
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class TestAlertDeduplicator:
    def test_first_alert_passes(self) -> None:
        assert AlertDeduplicator().should_send(_alert())

    def test_repeat_within_cooldown_suppressed(self) -> None:
        dedup = AlertDeduplicator()
        dedup.should_send(_alert())
        assert not dedup.should_send(_alert())

    def test_state_change_is_not_suppressed(self) -> None:
        dedup = AlertDeduplicator()
        dedup.should_send(_alert(IncidentState.ONGOING))
        assert dedup.should_send(_alert(IncidentState.RESOLVED))

    def test_other_incident_is_not_suppressed(self) -> None:
        dedup = AlertDeduplicator()
        dedup.should_send(_alert())
        assert dedup.should_send(_alert(incident_id="incident:worker:default"))

    def test_zero_cooldown(self) -> None:
        dedup = AlertDeduplicator(cooldown=timedelta(0))
        dedup.should_send(_alert())
        assert dedup.should_send(_alert())


class TestNotificationDispatcher:
    async def test_fans_out_to_every_channel(self) -> None:
        first, second = _RecordingChannel("a"), _RecordingChannel("b")
        dispatcher = NotificationDispatcher(channels=[first, second])
        dispatcher.dispatch(_alert())
        await dispatcher.stop()
        assert len(first.sent) == 1
        assert len(second.sent) == 1

    async def test_failing_channel_does_not_block_others(self) -> None:
        broken = _RecordingChannel("broken", result=RuntimeError("socket closed"))
        healthy = _RecordingChannel("healthy")
        dispatcher = NotificationDispatcher(channels=[broken, healthy])
        dispatcher.dispatch(_alert())
        await dispatcher.stop()
        assert len(healthy.sent) == 1

    async def test_duplicates_suppressed(self) -> None:
        channel = _RecordingChannel()
        dispatcher = NotificationDispatcher(channels=[channel])
        dispatcher.dispatch(_alert())
        dispatcher.dispatch(_alert())
        await dispatcher.stop()
        assert len(channel.sent) == 1

    async def test_no_channels_is_noop(self) -> None:
        dispatcher = NotificationDispatcher(channels=[])
        dispatcher.dispatch(_alert())
        await dispatcher.stop()
        assert dispatcher.channels == []

    async def test_dispatch_does_not_wait_for_delivery(self) -> None:
        gate = asyncio.Event()

        class _SlowChannel(_RecordingChannel):
            async def send(self, alert: IncidentAlert) -> bool:
                await gate.wait()
                return await super().send(alert)

        channel = _SlowChannel()
        dispatcher = NotificationDispatcher(channels=[channel])
        dispatcher.dispatch(_alert())
        assert channel.sent == []
        gate.set()
        await dispatcher.stop()
        assert len(channel.sent) == 1


class TestWebhookChannel:
    def _response(self, status_code: int) -> httpx.Response:
        return httpx.Response(status_code, text="ok", request=httpx.Request("POST", "http://hooks.local/alert"))

    def test_empty_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            WebhookNotificationChannel(url="")

    async def test_success(self) -> None:
        channel = WebhookNotificationChannel(url="http://hooks.local/alert", headers={"Authorization": "Bearer t"})
        alert = _alert()
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=self._response(200)) as post:
            assert await channel.send(alert) is True
        args, kwargs = post.call_args
        assert args == ("http://hooks.local/alert",)
        assert kwargs["json"] == build_payload(alert)
        assert kwargs["headers"]["Authorization"] == "Bearer t"

    async def test_non_2xx(self) -> None:
        channel = WebhookNotificationChannel(url="http://hooks.local/alert")
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=self._response(502)):
            assert await channel.send(_alert()) is False

    @pytest.mark.parametrize("error", [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")])
    async def test_transport_failures(self, error: Exception) -> None:
        channel = WebhookNotificationChannel(url="http://hooks.local/alert")
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, side_effect=error):
            assert await channel.send(_alert()) is False

    def test_payload(self) -> None:
        payload = build_payload(_alert(IncidentState.RESOLVED))
        assert payload["incident_id"] == "incident:api:default"
        assert payload["state"] == "RESOLVED"
        assert payload["transition"] == "resolved"
        assert payload["summary"] == "Pod transitioned from unhealthy to healthy state"
        assert payload["detected_at"] == "2026-02-18T12:00:00+00:00"


class TestBuildDispatcher:
    def test_webhook_enabled_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALERT_WEBHOOK_URL", "http://hooks.local/alert")
        dispatcher = build_notification_dispatcher(NotificationConfig(webhook_secret_ref="ALERT_WEBHOOK_URL"))
        assert [c.channel_name for c in dispatcher.channels] == ["webhook"]

    def test_empty_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ALERT_WEBHOOK_URL", raising=False)
        dispatcher = build_notification_dispatcher(NotificationConfig(webhook_secret_ref="ALERT_WEBHOOK_URL"))
        assert dispatcher.channels == []

    def test_no_ref(self) -> None:
        assert build_notification_dispatcher(NotificationConfig()).channels == []
