"""Read-only view of a watched pod and the objects it points at.

Instances are parsed from the Kubernetes JSON representation (camelCase keys,
as returned by the API server or ``ApiClient.sanitize_for_serialization``)
and are never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class PodIdentity:
    """Namespace/name key of a pod. Passes for the same identity are serialized."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class PodCondition:
    type: str
    status: str  # "True" | "False" | "Unknown"
    last_transition_time: datetime | None = None
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ContainerStateRunning:
    started_at: datetime | None = None


@dataclass(frozen=True)
class ContainerStateTerminated:
    exit_code: int = 0
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ContainerStateWaiting:
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ContainerState:
    """At most one of the three fields is set; all None is the zero value."""

    running: ContainerStateRunning | None = None
    terminated: ContainerStateTerminated | None = None
    waiting: ContainerStateWaiting | None = None


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    state: ContainerState = field(default_factory=ContainerState)


@dataclass(frozen=True)
class OwnerReference:
    kind: str
    name: str
    controller: bool = False


@dataclass(frozen=True)
class WorkloadInstance:
    """A pod as observed by a single reconciliation pass."""

    name: str
    namespace: str
    phase: str = ""
    conditions: tuple[PodCondition, ...] = ()
    container_statuses: tuple[ContainerStatus, ...] = ()
    owner_references: tuple[OwnerReference, ...] = ()
    containers: tuple[str, ...] = ()  # spec container names, in declaration order
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> PodIdentity:
        return PodIdentity(namespace=self.namespace, name=self.name)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> WorkloadInstance:
        metadata = raw.get("metadata") or {}
        spec = raw.get("spec") or {}
        status = raw.get("status") or {}
        return cls(
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace", "")),
            phase=str(status.get("phase") or ""),
            conditions=tuple(_parse_condition(c) for c in status.get("conditions") or []),
            container_statuses=tuple(_parse_container_status(s) for s in status.get("containerStatuses") or []),
            owner_references=_parse_owner_references(metadata),
            containers=tuple(str(c.get("name", "")) for c in spec.get("containers") or []),
            labels=dict(metadata.get("labels") or {}),
            annotations=dict(metadata.get("annotations") or {}),
        )


@dataclass(frozen=True)
class OwnedObject:
    """Any object that is only interesting for its owner references (e.g. a ReplicaSet)."""

    kind: str
    name: str
    namespace: str
    owner_references: tuple[OwnerReference, ...] = ()

    @classmethod
    def from_dict(cls, raw: dict[str, Any], kind: str = "") -> OwnedObject:
        metadata = raw.get("metadata") or {}
        return cls(
            kind=str(raw.get("kind") or kind),
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace", "")),
            owner_references=_parse_owner_references(metadata),
        )


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp; datetimes pass through, junk becomes None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_condition(raw: dict[str, Any]) -> PodCondition:
    return PodCondition(
        type=str(raw.get("type", "")),
        status=str(raw.get("status", "")),
        last_transition_time=parse_timestamp(raw.get("lastTransitionTime")),
        reason=str(raw.get("reason") or ""),
        message=str(raw.get("message") or ""),
    )


def _parse_container_status(raw: dict[str, Any]) -> ContainerStatus:
    state = raw.get("state") or {}
    running = state.get("running")
    terminated = state.get("terminated")
    waiting = state.get("waiting")
    return ContainerStatus(
        name=str(raw.get("name", "")),
        state=ContainerState(
            running=ContainerStateRunning(started_at=parse_timestamp(running.get("startedAt")))
            if running is not None
            else None,
            terminated=ContainerStateTerminated(
                exit_code=int(terminated.get("exitCode") or 0),
                reason=str(terminated.get("reason") or ""),
                message=str(terminated.get("message") or ""),
            )
            if terminated is not None
            else None,
            waiting=ContainerStateWaiting(
                reason=str(waiting.get("reason") or ""),
                message=str(waiting.get("message") or ""),
            )
            if waiting is not None
            else None,
        ),
    )


def _parse_owner_references(metadata: dict[str, Any]) -> tuple[OwnerReference, ...]:
    return tuple(
        OwnerReference(
            kind=str(ref.get("kind", "")),
            name=str(ref.get("name", "")),
            controller=bool(ref.get("controller", False)),
        )
        for ref in metadata.get("ownerReferences") or []
    )
