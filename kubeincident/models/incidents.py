"""Incident data structures and the incident identifier format.

An incident id is ``incident:<release>:<namespace>``. The query layer reads
the release name back out with a fixed-position split on ``:``, so neither
component may contain a colon (Kubernetes names never do).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from kubeincident.models.events import ClassifiedEvent

INCIDENT_ID_PREFIX = "incident"


class IncidentState(StrEnum):
    ONGOING = "ONGOING"
    RESOLVED = "RESOLVED"


def make_incident_id(release_name: str, namespace: str) -> str:
    """Build the deterministic incident id for a release in a namespace."""
    if not release_name or not namespace:
        raise ValueError("release_name and namespace must not be empty")
    if ":" in release_name or ":" in namespace:
        raise ValueError(f"incident id components must not contain ':' ({release_name!r}, {namespace!r})")
    return f"{INCIDENT_ID_PREFIX}:{release_name}:{namespace}"


def release_name_from_incident_id(incident_id: str) -> str:
    return incident_id.split(":")[1]


def parse_incident_id(incident_id: str) -> tuple[str, str]:
    """Return ``(release_name, namespace)``; raise ValueError on a malformed id."""
    parts = incident_id.split(":")
    if len(parts) != 3 or parts[0] != INCIDENT_ID_PREFIX or not parts[1] or not parts[2]:
        raise ValueError(f"malformed incident id: {incident_id!r}")
    return parts[1], parts[2]


@dataclass
class Incident:
    """A running correlation of classified events sharing one release identity."""

    id: str
    release_name: str
    namespace: str
    state: IncidentState = IncidentState.ONGOING
    events: list[ClassifiedEvent] = field(default_factory=list)
    log_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def resolved(self) -> bool:
        return self.state == IncidentState.RESOLVED

    @property
    def latest_reason(self) -> str:
        return self.events[-1].reason if self.events else ""

    @property
    def latest_message(self) -> str:
        return self.events[-1].message if self.events else ""
