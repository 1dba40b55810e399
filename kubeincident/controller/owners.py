"""Ownership resolution for pods.

Only the first owner reference is considered. A ReplicaSet owner is an
implementation detail of a Deployment, so it is looked through exactly once
to report the Deployment (or whatever owns the ReplicaSet) instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kubeincident.controller.client import ClusterError, ClusterReader
from kubeincident.models.workload import WorkloadInstance

if TYPE_CHECKING:
    import structlog

SCALING_GROUP_KIND = "ReplicaSet"
JOB_KIND = "Job"

RELEASE_LABEL = "app.kubernetes.io/instance"
RELEASE_ANNOTATION = "meta.helm.sh/release-name"


async def resolve_owner(
    instance: WorkloadInstance,
    reader: ClusterReader,
    log: structlog.stdlib.BoundLogger,
) -> tuple[str, str]:
    """Return ``(owner_name, owner_kind)`` for *instance*.

    Never raises for lookup failures: an owner that cannot be determined is
    reported as ``("", "")`` and callers treat it as unattributed.
    """
    if not instance.owner_references:
        log.debug("no owners defined for the pod")
        return "", ""

    owner = instance.owner_references[0]
    if owner.kind != SCALING_GROUP_KIND:
        return owner.name, owner.kind

    try:
        replica_set = await reader.get_replica_set(instance.namespace, owner.name)
    except ClusterError as exc:
        log.warning("cannot fetch owner for replicaset", replicaset=owner.name, error=str(exc))
        return "", ""

    if not replica_set.owner_references:
        log.info("no owner for the replicaset", replicaset=owner.name)
        return "", ""

    rs_owner = replica_set.owner_references[0]
    return rs_owner.name, rs_owner.kind


def is_job_owned(owner_kind: str) -> bool:
    return owner_kind == JOB_KIND


def release_name_for(instance: WorkloadInstance, owner_name: str) -> str:
    """Name of the release an incident for *instance* is filed under."""
    return (
        instance.labels.get(RELEASE_LABEL)
        or instance.annotations.get(RELEASE_ANNOTATION)
        or owner_name
        or instance.name
    )
