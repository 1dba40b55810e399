"""In-process incident store.

Submodules:
    incidents -- correlation of classified events into incidents, plus the
                 container log blobs collected for them.
"""

from kubeincident.store.incidents import IncidentStore, IncidentTransition, LogsNotFoundError

__all__ = ["IncidentStore", "IncidentTransition", "LogsNotFoundError"]
