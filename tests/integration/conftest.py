"""Shared fixtures for kubeincident integration tests.

Wires the reconciler, the work queue and the incident store together with
in-memory fakes for the cluster, so the full pipeline runs without touching a
real Kubernetes API server.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

import pytest

from kubeincident.controller.reconciler import PodReconciler
from kubeincident.processor.queue import EventProcessor
from kubeincident.store import IncidentStore
from tests.factories import FakeLogFetcher, FakeReader


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def store() -> IncidentStore:
    return IncidentStore()


@pytest.fixture
def log_fetcher() -> FakeLogFetcher:
    return FakeLogFetcher()


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
async def processor(store: IncidentStore, log_fetcher: FakeLogFetcher) -> AsyncIterator[EventProcessor]:
    proc = EventProcessor(store, log_fetcher=log_fetcher, workers=2, retry_base=0.01, retry_max=0.05)  # type: ignore[arg-type]
    await proc.start()
    yield proc
    await proc.stop()


@pytest.fixture
def reconciler(reader: FakeReader, processor: EventProcessor) -> PodReconciler:
    return PodReconciler(reader, processor, cluster_name="integration", requeue_delay=0.01)
