"""Status analysis: turns container runtime state into a reason/message pair.

Policy by pod shape:

* single container -- read that container's state directly;
* multiple containers owned by a Job -- itemised report over every container;
* multiple containers otherwise -- if the latest condition message names a
  failing container, report only that one, else the itemised report.
"""

from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING

from kubeincident.controller.conditions import latest_condition
from kubeincident.controller.containers import ErroredContainerParser, UnreadyStatusParser
from kubeincident.controller.owners import is_job_owned
from kubeincident.models.events import UNDETERMINED_STATE
from kubeincident.models.workload import ContainerState, PodCondition, WorkloadInstance

if TYPE_CHECKING:
    import structlog


def state_for_container(instance: WorkloadInstance, container_name: str) -> ContainerState:
    """Return the runtime state of *container_name*.

    An empty name selects the first status (single-container pods). When
    several statuses share the name the last one wins; when none match the
    zero-valued state is returned.
    """
    if not container_name:
        if not instance.container_statuses:
            return ContainerState()
        return instance.container_statuses[0].state

    state = ContainerState()
    for status in instance.container_statuses:
        if status.name == container_name:
            state = status.state
    return state


def extract_from_container_state(state: ContainerState) -> tuple[str, str]:
    if state.running is not None:
        started = state.running.started_at
        started_str = started.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ") if started else "unknown"
        return "", f"Container started at: {started_str}"

    if state.terminated is not None:
        return f"Terminated: {state.terminated.reason}", state.terminated.message

    waiting = state.waiting
    if waiting is None:
        return "Waiting: ", ""
    return f"Waiting: {waiting.reason}", waiting.message


def extract_all_containers(instance: WorkloadInstance) -> tuple[str, str]:
    """Itemised reason/message report, one line per container status."""
    reasons: list[str] = []
    messages: list[str] = []
    for status in instance.container_statuses:
        reason, message = extract_from_container_state(state_for_container(instance, status.name))
        reasons.append(f"Container: {status.name}, Reason: {reason}")
        messages.append(f"Container: {status.name}, Message: {message}")
    return "\n".join(reasons), "\n".join(messages)


def failed_job_containers(instance: WorkloadInstance) -> list[str]:
    """Names of containers that terminated with a non-zero exit code."""
    return [
        status.name
        for status in instance.container_statuses
        if status.state.terminated is not None and status.state.terminated.exit_code != 0
    ]


class StatusAnalyzer:
    """Summarises the dominant failure of a pod.

    The failing-container heuristic is injected so it can be replaced without
    touching the reconciler.
    """

    def __init__(self, parser: ErroredContainerParser | None = None) -> None:
        self._parser = parser or UnreadyStatusParser()

    def failing_container(self, latest: PodCondition | None) -> str | None:
        """Container named as failing by the latest condition, if any."""
        if latest is None:
            return None
        return self._parser.extract(latest.message)

    def extract_reason_and_message(
        self,
        instance: WorkloadInstance,
        owner_kind: str,
        log: structlog.stdlib.BoundLogger,
        latest: PodCondition | None = None,
    ) -> tuple[str, str]:
        if not instance.container_statuses:
            log.info("no container statuses to extract from")
            return "", UNDETERMINED_STATE

        if len(instance.containers) <= 1:
            return extract_from_container_state(state_for_container(instance, ""))

        if is_job_owned(owner_kind):
            log.debug("pod owned by a job, extracting from all container statuses")
            return extract_all_containers(instance)

        if latest is None:
            latest = latest_condition(instance.conditions)
        container = self.failing_container(latest)
        if container is not None:
            log.debug("failing container named in condition message", container=container)
            return extract_from_container_state(state_for_container(instance, container))

        return extract_all_containers(instance)
