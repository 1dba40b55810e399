"""Pod reconciliation: classify a pod state change into at most one event.

A pass fetches the pod, decides criticality, attributes an owner, extracts
the dominant failure and hands exactly one ClassifiedEvent to the work queue,
followed by a log collection request. A pass that finds the pod's status not
yet populated asks to be re-run instead of emitting a partial event.

Passes for one pod are serialized by the caller; the reconciler keeps no
per-pass state on ``self`` and is safe to share across concurrent passes for
different pods.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from kubeincident.controller.analyzer import StatusAnalyzer, failed_job_containers
from kubeincident.controller.client import ClusterReader, NotFoundError, TransportError
from kubeincident.controller.conditions import sort_conditions
from kubeincident.controller.owners import is_job_owned, release_name_for, resolve_owner
from kubeincident.models.events import ClassifiedEvent, ResourceType
from kubeincident.models.workload import PodCondition, PodIdentity, WorkloadInstance
from kubeincident.observability.logging import get_logger, pod_logger
from kubeincident.observability.metrics import (
    events_classified_total,
    reconcile_duration_seconds,
    reconcile_total,
)
from kubeincident.processor.base import EnqueueDetailOptions, Processor

if TYPE_CHECKING:
    import structlog

# Phases that are critical on their own, whatever the conditions say.
CRITICAL_PHASES = frozenset({"Failed", "Unknown"})

# Batch pods are collected as one logical unit under this container name.
JOB_LOG_CONTAINER = "job"


class ReconcileAction(StrEnum):
    NOOP = "noop"
    REQUEUE = "requeue"
    EMITTED = "emitted"


@dataclass(frozen=True)
class ReconcileResult:
    action: ReconcileAction
    event: ClassifiedEvent | None = None
    requeue_after: float = 0.0

    @classmethod
    def noop(cls) -> ReconcileResult:
        return cls(action=ReconcileAction.NOOP)

    @classmethod
    def requeue(cls, delay: float) -> ReconcileResult:
        return cls(action=ReconcileAction.REQUEUE, requeue_after=delay)

    @classmethod
    def emitted(cls, event: ClassifiedEvent) -> ReconcileResult:
        return cls(action=ReconcileAction.EMITTED, event=event)


class PodReconciler:
    """Turns a pod identity into a classified event.

    Args:
        reader:          Cluster read API (pod and ReplicaSet lookups).
        processor:       Work queue receiving events and log requests.
        cluster_name:    Stamped on every event.
        requeue_delay:   Seconds to wait before re-running a deferred pass.
        analyzer:        Status analyzer; defaults to the kubelet-message parser.
    """

    def __init__(
        self,
        reader: ClusterReader,
        processor: Processor,
        *,
        cluster_name: str = "",
        requeue_delay: float = 5.0,
        analyzer: StatusAnalyzer | None = None,
    ) -> None:
        self._reader = reader
        self._processor = processor
        self._cluster_name = cluster_name
        self._requeue_delay = requeue_delay
        self._analyzer = analyzer or StatusAnalyzer()
        self._log = get_logger("controller.pod")

    async def reconcile(
        self,
        identity: PodIdentity,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> ReconcileResult:
        """Run one pass for *identity*.

        Raises:
            TransportError: the pod could not be read; the pass should be
                re-delivered by the caller.
        """
        log = pod_logger(log or self._log, identity)
        with reconcile_duration_seconds.time():
            try:
                result = await self._reconcile(identity, log)
            except TransportError as exc:
                reconcile_total.labels(outcome="error").inc()
                log.warning("cannot fetch pod", error=str(exc))
                raise
        reconcile_total.labels(outcome=result.action.value).inc()
        return result

    async def _reconcile(self, identity: PodIdentity, log: structlog.stdlib.BoundLogger) -> ReconcileResult:
        try:
            instance = await self._reader.get_pod(identity)
        except NotFoundError:
            # Deletion does not produce an event; incidents resolve through
            # healthy events of the replacement pods.
            log.info("pod deleted")
            return ReconcileResult.noop()

        conditions = sort_conditions(instance.conditions)
        latest = conditions[0] if conditions else None

        if instance.phase in CRITICAL_PHASES:
            log.info("pod in critical phase", phase=instance.phase)
            owner_name, owner_kind = await resolve_owner(instance, self._reader, log)
            return self._emit(instance, latest, owner_name, owner_kind, True, log)

        if latest is None:
            log.info("empty status conditions, requeueing")
            return ReconcileResult.requeue(self._requeue_delay)

        if not instance.container_statuses:
            log.info("nothing in container statuses, requeueing")
            return ReconcileResult.requeue(self._requeue_delay)

        owner_name, owner_kind = await resolve_owner(instance, self._reader, log)

        if is_job_owned(owner_kind):
            failed = failed_job_containers(instance)
            if failed:
                log.info("job pod has containers with non-zero exit code", containers=failed)
            return self._emit(instance, latest, owner_name, owner_kind, bool(failed), log)

        return self._emit(instance, latest, owner_name, owner_kind, latest.status == "False", log)

    def _emit(
        self,
        instance: WorkloadInstance,
        latest: PodCondition | None,
        owner_name: str,
        owner_kind: str,
        critical: bool,
        log: structlog.stdlib.BoundLogger,
    ) -> ReconcileResult:
        reason, message = self._analyzer.extract_reason_and_message(instance, owner_kind, log, latest)
        event = ClassifiedEvent(
            resource_type=ResourceType.POD,
            name=instance.name,
            namespace=instance.namespace,
            cluster=self._cluster_name,
            owner_name=owner_name,
            owner_type=owner_kind,
            release_name=release_name_for(instance, owner_name),
            reason=reason,
            message=message,
            phase=instance.phase,
            condition_type=latest.type if latest else "",
            condition_status=latest.status if latest else "",
            critical=critical,
            timestamp=datetime.now(tz=UTC),
        )
        options = EnqueueDetailOptions(container_names=self._log_containers(instance, owner_kind, latest))

        log.info(
            "classified pod event",
            critical=critical,
            owner_name=owner_name,
            owner_type=owner_kind,
            reason=reason,
            status=event.status,
        )
        self._processor.add_to_work_queue(instance.identity, event)
        events_classified_total.labels(criticality=event.event_type.value).inc()
        self._processor.enqueue_details(instance.identity, options)
        return ReconcileResult.emitted(event)

    def _log_containers(
        self,
        instance: WorkloadInstance,
        owner_kind: str,
        latest: PodCondition | None,
    ) -> tuple[str, ...]:
        if is_job_owned(owner_kind):
            return (JOB_LOG_CONTAINER,)
        if len(instance.containers) > 1:
            failing = self._analyzer.failing_container(latest)
            if failing is not None and failing in instance.containers:
                return (failing,)
            return (instance.containers[0],)
        return ()
