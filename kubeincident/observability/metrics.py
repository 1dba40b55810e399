"""Prometheus metrics for kubeincident.

All collectors are registered on the default registry and exposed by the
REST API under ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

reconcile_total = Counter(
    "kubeincident_reconcile_total",
    "Reconciliation passes by outcome.",
    ["outcome"],  # emitted | requeue | noop | error
)

reconcile_duration_seconds = Histogram(
    "kubeincident_reconcile_duration_seconds",
    "Wall-clock duration of a single reconciliation pass.",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

events_classified_total = Counter(
    "kubeincident_events_classified_total",
    "Classified events handed to the work queue.",
    ["criticality"],
)

work_items_dropped_total = Counter(
    "kubeincident_work_items_dropped_total",
    "Work items dropped because the queue was full or retries were exhausted.",
    ["kind", "reason"],
)

work_queue_depth = Gauge(
    "kubeincident_work_queue_depth",
    "Items currently waiting in the work queue.",
)

log_fetch_total = Counter(
    "kubeincident_log_fetch_total",
    "Container log fetch attempts.",
    ["success"],
)

incident_transitions_total = Counter(
    "kubeincident_incident_transitions_total",
    "Incident lifecycle transitions recorded by the store.",
    ["transition"],  # opened | updated | resolved | reopened
)

notifications_total = Counter(
    "kubeincident_notifications_total",
    "Notification delivery attempts.",
    ["channel", "success"],
)

watch_restarts_total = Counter(
    "kubeincident_watch_restarts_total",
    "Pod watch stream reconnects.",
)
