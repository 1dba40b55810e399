"""Notification dispatcher and deduplication.

NotificationChannel    -- ABC every channel must implement.
NotificationDispatcher -- Fans out alerts to all registered channels;
                          failures in one channel never block others or
                          the work queue.
AlertDeduplicator      -- Cooldown per (incident_id, state) so a flapping
                          release does not page on every transition.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

import structlog

from kubeincident.models.alerts import IncidentAlert
from kubeincident.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

_DEDUP_COOLDOWN = timedelta(minutes=5)


class NotificationChannel(ABC):
    """Abstract base class for all notification channels.

    ``send`` should not raise; return ``False`` instead.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Channel identifier used in metrics and logs."""

    @abstractmethod
    async def send(self, alert: IncidentAlert) -> bool:
        """Deliver *alert*; True when the remote endpoint accepted it."""


class AlertDeduplicator:
    """Suppresses repeated alerts for the same incident state within a cooldown."""

    def __init__(self, cooldown: timedelta = _DEDUP_COOLDOWN) -> None:
        self._cooldown = cooldown
        self._last_sent: dict[tuple[str, str], datetime] = {}

    def should_send(self, alert: IncidentAlert) -> bool:
        key = (alert.incident_id, alert.state.value)
        now = datetime.now(tz=UTC)
        last = self._last_sent.get(key)
        if last is not None and (now - last) < self._cooldown:
            _log.debug(
                "alert_suppressed_by_deduplicator",
                incident_id=alert.incident_id,
                state=alert.state.value,
                seconds_remaining=int((self._cooldown - (now - last)).total_seconds()),
            )
            return False
        self._last_sent[key] = now
        return True


class NotificationDispatcher:
    """Fan-out dispatcher that sends an alert to every registered channel.

    ``dispatch`` never blocks: delivery runs as a background task.
    """

    def __init__(
        self,
        channels: list[NotificationChannel],
        deduplicator: AlertDeduplicator | None = None,
    ) -> None:
        self._channels = channels
        self._deduplicator = deduplicator or AlertDeduplicator()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def dispatch(self, alert: IncidentAlert) -> None:
        if not self._channels:
            return
        if not self._deduplicator.should_send(alert):
            return
        task = asyncio.ensure_future(self._fan_out(alert))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def stop(self) -> None:
        """Wait for in-flight deliveries to finish."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _fan_out(self, alert: IncidentAlert) -> None:
        tasks = [self._send_one(channel, alert) for channel in self._channels]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _send_one(self, channel: NotificationChannel, alert: IncidentAlert) -> None:
        try:
            success = await channel.send(alert)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.channel_name,
                alert_id=alert.alert_id,
                error=str(exc),
            )
            success = False

        notifications_total.labels(channel=channel.channel_name, success="true" if success else "false").inc()

        if success:
            _log.info(
                "notification_sent",
                channel=channel.channel_name,
                incident_id=alert.incident_id,
                transition=alert.transition,
            )
        else:
            _log.warning("notification_failed", channel=channel.channel_name, incident_id=alert.incident_id)
