"""Notification system for kubeincident.

Dispatches IncidentAlert instances, raised when an incident opens, resolves
or reopens, to the configured channels.

Exports:
    NotificationChannel        -- Abstract base for channel implementations.
    NotificationDispatcher     -- Fire-and-forget fan-out to all channels.
    AlertDeduplicator          -- Cooldown per (incident_id, state).
    WebhookNotificationChannel -- Generic JSON POST webhook channel.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from kubeincident.notifications.manager import (
    AlertDeduplicator,
    NotificationChannel,
    NotificationDispatcher,
)
from kubeincident.notifications.webhook import WebhookNotificationChannel

if TYPE_CHECKING:
    from kubeincident.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "AlertDeduplicator",
    "NotificationChannel",
    "NotificationDispatcher",
    "WebhookNotificationChannel",
    "build_notification_dispatcher",
]


def build_notification_dispatcher(config: NotificationConfig) -> NotificationDispatcher:
    """Build a NotificationDispatcher from environment-resolved secrets.

    ``config.webhook_secret_ref`` names the environment variable holding the
    webhook URL. The channel is enabled only when that variable is non-empty.
    """
    channels: list[NotificationChannel] = []

    webhook_ref = config.webhook_secret_ref
    if webhook_ref:
        webhook_url = os.environ.get(webhook_ref, "")
        if webhook_url:
            channels.append(WebhookNotificationChannel(url=webhook_url))
            _log.info("webhook_channel_enabled")
        else:
            _log.debug("webhook_channel_skipped", reason="secret ref env var is empty")

    if not channels:
        _log.info("no_notification_channels_configured")

    return NotificationDispatcher(channels=channels)
