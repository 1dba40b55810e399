"""Classified event data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class ResourceType(StrEnum):
    """Kind of object a classified event describes."""

    POD = "Pod"
    HPA = "HPA"
    NODE = "Node"


class EventCriticality(StrEnum):
    """Binary severity tag driving downstream alerting."""

    CRITICAL = "Critical"
    NORMAL = "Normal"


UNHEALTHY_TO_HEALTHY_MESSAGE = "Pod transitioned from unhealthy to healthy state"
UNDETERMINED_STATE = "Unable to determine the root cause of the error"


@dataclass(frozen=True)
class ClassifiedEvent:
    """One classified observation of a pod.

    Produced once per non-deferred reconciliation pass and immutable after
    that. ``timestamp`` is the instant of classification, not the time of the
    underlying state transition.
    """

    name: str
    namespace: str
    critical: bool
    resource_type: ResourceType = ResourceType.POD
    cluster: str = ""
    owner_name: str = ""
    owner_type: str = ""
    release_name: str = ""
    reason: str = ""
    message: str = ""
    phase: str = ""
    condition_type: str = ""
    condition_status: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def status(self) -> str:
        """Condition summary, e.g. ``Type: Ready, Status: False``."""
        if not self.condition_type:
            return ""
        return f"Type: {self.condition_type}, Status: {self.condition_status}"

    @property
    def event_type(self) -> EventCriticality:
        return EventCriticality.CRITICAL if self.critical else EventCriticality.NORMAL

    @property
    def is_healthy(self) -> bool:
        """True when this event is evidence that the workload has recovered."""
        if self.critical:
            return False
        return self.condition_status == "True" or self.phase == "Succeeded"

    def to_dict(self) -> dict[str, object]:
        """Serialise to the JSON shape served by the query API."""
        return {
            "resource_type": self.resource_type.value,
            "name": self.name,
            "namespace": self.namespace,
            "cluster": self.cluster,
            "owner_name": self.owner_name,
            "owner_type": self.owner_type,
            "release_name": self.release_name,
            "message": self.message,
            "reason": self.reason,
            "critical": self.critical,
            "timestamp": self.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "event_type": self.event_type.value,
            "pod_phase": self.phase,
            "pod_status": self.status,
        }
