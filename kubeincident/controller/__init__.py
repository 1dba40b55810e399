"""Pod controller: reconciliation engine, status analysis and owner resolution.

Submodules
----------
client      -- cluster read boundary (NotFoundError / TransportError).
conditions  -- stable recency ordering of pod conditions.
containers  -- failing-container name parser for condition messages.
owners      -- owner resolution with one ReplicaSet hop.
analyzer    -- reason/message extraction from container runtime state.
reconciler  -- PodReconciler, the per-pod classification pass.
watcher     -- PodWatcher and the per-identity KeyedDispatcher.
"""

from kubeincident.controller.analyzer import StatusAnalyzer
from kubeincident.controller.client import (
    ClusterReader,
    KubernetesClusterReader,
    NotFoundError,
    TransportError,
)
from kubeincident.controller.reconciler import PodReconciler, ReconcileAction, ReconcileResult

__all__ = [
    "ClusterReader",
    "KubernetesClusterReader",
    "NotFoundError",
    "PodReconciler",
    "ReconcileAction",
    "ReconcileResult",
    "StatusAnalyzer",
    "TransportError",
]
