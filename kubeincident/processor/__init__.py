"""Dispatch boundary: the reconciler's outbound work queue.

Submodules:
    base   -- Processor protocol and EnqueueDetailOptions.
    queue  -- EventProcessor, the asyncio-backed implementation.
    logs   -- LogFetcher for container logs.
"""

from kubeincident.processor.base import EnqueueDetailOptions, Processor
from kubeincident.processor.logs import LogFetcher
from kubeincident.processor.queue import EventProcessor, WorkItem, WorkKind

__all__ = [
    "EnqueueDetailOptions",
    "EventProcessor",
    "LogFetcher",
    "Processor",
    "WorkItem",
    "WorkKind",
]
