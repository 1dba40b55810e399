"""Incident correlation and storage.

Events are correlated by ``(release_name, namespace)`` into a single incident
whose id never changes, so repeated failures of one release accumulate in one
history. Lifecycle:

* critical event, no incident        -> incident created, ONGOING
* any event, incident exists         -> appended to history
* healthy event, incident ONGOING    -> RESOLVED
* critical event, incident RESOLVED  -> ONGOING again (same id)
* non-critical event, no incident    -> ignored

State is held in-process; restarting the agent drops all incidents.
"""

from __future__ import annotations

import itertools
from collections import OrderedDict
from datetime import UTC, datetime
from enum import StrEnum

import structlog

from kubeincident.models.events import ClassifiedEvent
from kubeincident.models.incidents import Incident, IncidentState, make_incident_id
from kubeincident.models.workload import PodIdentity
from kubeincident.observability.metrics import incident_transitions_total

_log = structlog.get_logger(component="store.incidents")

_MAX_LOGS = 1000
_MAX_TRACKED_PODS = 5000


class LogsNotFoundError(LookupError):
    """No logs are stored under the requested id."""


class IncidentTransition(StrEnum):
    OPENED = "opened"
    UPDATED = "updated"
    RESOLVED = "resolved"
    REOPENED = "reopened"
    IGNORED = "ignored"


class IncidentStore:
    """Keyed store of incidents, their event histories and collected logs."""

    def __init__(
        self,
        max_events_per_incident: int = 200,
        max_logs: int = _MAX_LOGS,
        max_tracked_pods: int = _MAX_TRACKED_PODS,
    ) -> None:
        self._max_events = max_events_per_incident
        self._max_logs = max_logs
        self._max_tracked_pods = max_tracked_pods
        self._incidents: dict[str, Incident] = {}
        # Most recently seen pods last; the oldest is forgotten past the cap.
        self._pod_incident: OrderedDict[PodIdentity, str] = OrderedDict()
        self._logs: OrderedDict[str, str] = OrderedDict()
        self._log_seq = itertools.count(1)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_event(self, event: ClassifiedEvent) -> tuple[Incident | None, IncidentTransition]:
        """Correlate *event* into its incident and apply the lifecycle rule."""
        release = event.release_name or event.owner_name or event.name
        incident_id = make_incident_id(release, event.namespace)
        incident = self._incidents.get(incident_id)

        if incident is None:
            if not event.critical:
                return None, IncidentTransition.IGNORED
            incident = Incident(id=incident_id, release_name=release, namespace=event.namespace)
            self._incidents[incident_id] = incident
            transition = IncidentTransition.OPENED
        elif incident.state == IncidentState.RESOLVED:
            if not event.critical:
                return incident, IncidentTransition.IGNORED
            incident.state = IncidentState.ONGOING
            transition = IncidentTransition.REOPENED
        elif event.is_healthy:
            incident.state = IncidentState.RESOLVED
            transition = IncidentTransition.RESOLVED
        else:
            transition = IncidentTransition.UPDATED

        incident.events.append(event)
        if len(incident.events) > self._max_events:
            del incident.events[: len(incident.events) - self._max_events]
        incident.updated_at = datetime.now(tz=UTC)
        self._track_pod(PodIdentity(namespace=event.namespace, name=event.name), incident_id)

        incident_transitions_total.labels(transition=transition.value).inc()
        _log.info(
            "incident_event_recorded",
            incident_id=incident_id,
            transition=transition.value,
            state=incident.state.value,
            pod=event.name,
            critical=event.critical,
        )
        return incident, transition

    def _track_pod(self, identity: PodIdentity, incident_id: str) -> None:
        self._pod_incident[identity] = incident_id
        self._pod_incident.move_to_end(identity)
        while len(self._pod_incident) > self._max_tracked_pods:
            self._pod_incident.popitem(last=False)

    def put_logs(self, identity: PodIdentity, container: str, contents: str) -> str:
        """Store a log blob and link it to the pod's incident, if there is one."""
        log_id = f"logs:{identity.namespace}:{identity.name}:{next(self._log_seq)}"
        self._logs[log_id] = contents
        while len(self._logs) > self._max_logs:
            self._logs.popitem(last=False)

        incident_id = self._pod_incident.get(identity)
        if incident_id is not None and incident_id in self._incidents:
            self._incidents[incident_id].log_ids.append(log_id)
        _log.debug("logs_stored", log_id=log_id, container=container or "<default>", incident_id=incident_id)
        return log_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_incident_ids(self) -> list[str]:
        return list(self._incidents)

    def incidents_for_release(self, release_name: str, namespace: str) -> list[str]:
        try:
            incident_id = make_incident_id(release_name, namespace)
        except ValueError:
            return []
        return [incident_id] if incident_id in self._incidents else []

    def exists(self, incident_id: str) -> bool:
        return incident_id in self._incidents

    def get(self, incident_id: str) -> Incident | None:
        return self._incidents.get(incident_id)

    def is_resolved(self, incident_id: str) -> bool:
        return self._incidents[incident_id].resolved

    def latest_reason_and_message(self, incident_id: str) -> tuple[str, str]:
        incident = self._incidents[incident_id]
        return incident.latest_reason, incident.latest_message

    def get_logs(self, log_id: str) -> str:
        try:
            return self._logs[log_id]
        except KeyError:
            raise LogsNotFoundError(f"no such logs: {log_id}") from None
