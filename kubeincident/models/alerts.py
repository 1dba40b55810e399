"""Incident alert data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from kubeincident.models.events import UNHEALTHY_TO_HEALTHY_MESSAGE, ClassifiedEvent
from kubeincident.models.incidents import Incident, IncidentState


@dataclass(frozen=True)
class IncidentAlert:
    """Emitted by the work queue on incident lifecycle transitions, consumed by notifications."""

    incident_id: str
    release_name: str
    namespace: str
    state: IncidentState
    transition: str  # opened | resolved | reopened
    pod: str
    owner_name: str
    owner_type: str
    reason: str
    summary: str
    detected_at: datetime
    critical: bool = True
    alert_id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def from_incident(cls, incident: Incident, event: ClassifiedEvent, transition: str) -> IncidentAlert:
        summary = event.message
        if incident.state == IncidentState.RESOLVED:
            summary = UNHEALTHY_TO_HEALTHY_MESSAGE
        return cls(
            incident_id=incident.id,
            release_name=incident.release_name,
            namespace=incident.namespace,
            state=incident.state,
            transition=transition,
            pod=event.name,
            owner_name=event.owner_name,
            owner_type=event.owner_type,
            reason=event.reason,
            summary=summary,
            detected_at=event.timestamp,
            critical=event.critical,
        )
