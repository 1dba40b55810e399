"""Core data structures for kubeincident."""

from kubeincident.models.alerts import IncidentAlert
from kubeincident.models.config import AgentConfig
from kubeincident.models.events import (
    UNDETERMINED_STATE,
    UNHEALTHY_TO_HEALTHY_MESSAGE,
    ClassifiedEvent,
    EventCriticality,
    ResourceType,
)
from kubeincident.models.incidents import (
    Incident,
    IncidentState,
    make_incident_id,
    parse_incident_id,
    release_name_from_incident_id,
)
from kubeincident.models.workload import (
    ContainerState,
    ContainerStateRunning,
    ContainerStateTerminated,
    ContainerStateWaiting,
    ContainerStatus,
    OwnedObject,
    OwnerReference,
    PodCondition,
    PodIdentity,
    WorkloadInstance,
)

__all__ = [
    "AgentConfig",
    "ClassifiedEvent",
    "ContainerState",
    "ContainerStateRunning",
    "ContainerStateTerminated",
    "ContainerStateWaiting",
    "ContainerStatus",
    "EventCriticality",
    "Incident",
    "IncidentAlert",
    "IncidentState",
    "OwnedObject",
    "OwnerReference",
    "PodCondition",
    "PodIdentity",
    "ResourceType",
    "UNDETERMINED_STATE",
    "UNHEALTHY_TO_HEALTHY_MESSAGE",
    "WorkloadInstance",
    "make_incident_id",
    "parse_incident_id",
    "release_name_from_incident_id",
]
