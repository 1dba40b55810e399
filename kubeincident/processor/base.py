"""Outbound contract between the reconciler and the asynchronous work queue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kubeincident.models.events import ClassifiedEvent
from kubeincident.models.workload import PodIdentity


@dataclass(frozen=True)
class EnqueueDetailOptions:
    """Log collection request. An empty ``container_names`` means the default container."""

    container_names: tuple[str, ...] = ()


class Processor(Protocol):
    """Work queue interface the reconciler hands its results to.

    Both calls are non-blocking handoffs: they return once the item is queued
    (or dropped) and never wait for the work itself.
    """

    def add_to_work_queue(self, identity: PodIdentity, event: ClassifiedEvent) -> None: ...

    def enqueue_details(self, identity: PodIdentity, options: EnqueueDetailOptions) -> None: ...
