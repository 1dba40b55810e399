"""Generic JSON webhook notification channel.

Posts IncidentAlert data as a JSON body to any configured HTTP endpoint.
"""

from __future__ import annotations

import httpx
import structlog

from kubeincident.models.alerts import IncidentAlert
from kubeincident.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")


class WebhookNotificationChannel(NotificationChannel):
    """Delivers alerts by POSTing a JSON payload to a configurable URL.

    Args:
        url:     Full endpoint URL.
        headers: Optional extra headers (e.g. Authorization).
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "webhook"

    async def send(self, alert: IncidentAlert) -> bool:
        payload = build_payload(alert)
        request_headers = {"Content-Type": "application/json", **self._headers}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=payload, headers=request_headers)
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", incident_id=alert.incident_id, url=self._url)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", error=str(exc), incident_id=alert.incident_id)
            return False

        if response.is_success:
            return True
        _log.warning(
            "webhook_non_2xx_response",
            status_code=response.status_code,
            body=response.text[:200],
            incident_id=alert.incident_id,
        )
        return False


def build_payload(alert: IncidentAlert) -> dict[str, object]:
    return {
        "alert_id": alert.alert_id,
        "incident_id": alert.incident_id,
        "release_name": alert.release_name,
        "namespace": alert.namespace,
        "state": alert.state.value,
        "transition": alert.transition,
        "pod": alert.pod,
        "owner_name": alert.owner_name,
        "owner_type": alert.owner_type,
        "reason": alert.reason,
        "summary": alert.summary,
        "critical": alert.critical,
        "detected_at": alert.detected_at.isoformat(),
    }
