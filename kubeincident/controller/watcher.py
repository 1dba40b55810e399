"""Pod watch loop and per-identity serialized dispatch.

PodWatcher   -- streams pod changes from the API server and reconnects with
                capped exponential back-off.
KeyedDispatcher -- runs reconciliation passes: concurrent across pods,
                serialized for a single pod. A pod notified while its pass is
                running is re-run once the pass finishes; a pod already
                waiting is not queued twice.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kubeincident.controller.client import TransportError
from kubeincident.controller.reconciler import ReconcileAction, ReconcileResult
from kubeincident.models.workload import PodIdentity
from kubeincident.observability.logging import get_logger
from kubeincident.observability.metrics import watch_restarts_total

if TYPE_CHECKING:
    from kubernetes_asyncio.client import CoreV1Api  # type: ignore[import-untyped]

_log = get_logger("controller.watcher")

ReconcileFn = Callable[[PodIdentity], Awaitable[ReconcileResult]]

# Watch resourceVersion too old to resume from.
_GONE = 410


def _backoff(failures: int, base: float, cap: float) -> float:
    return min(base * (2 ** max(failures - 1, 0)), cap)


class KeyedDispatcher:
    """Bounded pool of workers draining a de-duplicated queue of pod identities."""

    def __init__(
        self,
        handler: ReconcileFn,
        max_concurrency: int = 4,
        retry_base: float = 1.0,
        retry_max: float = 60.0,
    ) -> None:
        self._handler = handler
        self._max_concurrency = max_concurrency
        self._retry_base = retry_base
        self._retry_max = retry_max

        self._queue: asyncio.Queue[PodIdentity] = asyncio.Queue()
        self._pending: set[PodIdentity] = set()
        self._active: set[PodIdentity] = set()
        self._dirty: set[PodIdentity] = set()
        self._failures: dict[PodIdentity, int] = {}
        self._timers: dict[PodIdentity, asyncio.TimerHandle] = {}
        self._workers: list[asyncio.Task[None]] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, identity: PodIdentity) -> None:
        """Schedule a pass for *identity* unless one is already waiting."""
        if identity in self._active:
            self._dirty.add(identity)
            return
        if identity in self._pending:
            return
        self._pending.add(identity)
        self._queue.put_nowait(identity)

    def enqueue_after(self, identity: PodIdentity, delay: float) -> None:
        """Schedule a pass for *identity* after *delay* seconds, replacing any earlier timer."""
        existing = self._timers.pop(identity, None)
        if existing is not None:
            existing.cancel()
        loop = asyncio.get_running_loop()
        self._timers[identity] = loop.call_later(delay, self._fire_timer, identity)

    def _fire_timer(self, identity: PodIdentity) -> None:
        self._timers.pop(identity, None)
        self.enqueue(identity)

    async def start(self) -> None:
        for i in range(self._max_concurrency):
            self._workers.append(asyncio.create_task(self._worker(), name=f"reconcile-worker-{i}"))

    async def stop(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def join(self) -> None:
        """Wait until every queued identity has been processed (used by tests)."""
        await self._queue.join()

    async def _worker(self) -> None:
        while True:
            identity = await self._queue.get()
            self._pending.discard(identity)
            self._active.add(identity)
            try:
                await self._process(identity)
            finally:
                self._active.discard(identity)
                # Re-queue before task_done so join() never observes an empty queue in between.
                if identity in self._dirty:
                    self._dirty.discard(identity)
                    self.enqueue(identity)
                self._queue.task_done()

    async def _process(self, identity: PodIdentity) -> None:
        try:
            result = await self._handler(identity)
        except TransportError as exc:
            self._retry(identity, str(exc), level="warning")
            return
        except Exception as exc:  # noqa: BLE001
            self._retry(identity, str(exc), level="error")
            return

        self._failures.pop(identity, None)
        if result.action == ReconcileAction.REQUEUE:
            self.enqueue_after(identity, result.requeue_after)

    def _retry(self, identity: PodIdentity, error: str, level: str) -> None:
        failures = self._failures.get(identity, 0) + 1
        self._failures[identity] = failures
        delay = _backoff(failures, self._retry_base, self._retry_max)
        getattr(_log, level)(
            "reconcile failed, retrying",
            pod=str(identity),
            error=error,
            failures=failures,
            retry_in=delay,
        )
        self.enqueue_after(identity, delay)


class PodWatcher:
    """Feeds pod change notifications into a KeyedDispatcher.

    Args:
        core_v1:          kubernetes-asyncio CoreV1Api.
        dispatcher:       Receives one ``enqueue`` per notification.
        namespace:        Namespace to watch; empty watches every namespace.
        timeout_seconds:  Server-side watch timeout before a clean reconnect.

    Reconnects resume from the last resourceVersion seen, so only changes
    made while disconnected are delivered. The version is dropped, and the
    next stream starts with a full list, only when the server reports it as
    expired (410 Gone).
    """

    def __init__(
        self,
        core_v1: CoreV1Api,
        dispatcher: KeyedDispatcher,
        namespace: str = "",
        timeout_seconds: int = 300,
        backoff_base: float = 1.0,
        backoff_max: float = 60.0,
    ) -> None:
        self._core_v1 = core_v1
        self._dispatcher = dispatcher
        self._namespace = namespace
        self._timeout_seconds = timeout_seconds
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._task: asyncio.Task[None] | None = None
        self._resource_version = ""

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="pod-watcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        failures = 0
        while True:
            try:
                await self._watch_once()
                failures = 0
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                failures += 1
                delay = _backoff(failures, self._backoff_base, self._backoff_max)
                watch_restarts_total.inc()
                _log.warning("pod watch failed, reconnecting", error=str(exc), failures=failures, retry_in=delay)
                await asyncio.sleep(delay)

    async def _watch_once(self) -> None:
        kwargs: dict[str, Any] = {"timeout_seconds": self._timeout_seconds}
        if self._namespace:
            fn = self._core_v1.list_namespaced_pod
            kwargs["namespace"] = self._namespace
        else:
            fn = self._core_v1.list_pod_for_all_namespaces

        if self._resource_version:
            kwargs["resource_version"] = self._resource_version

        _log.info(
            "pod watch started",
            namespace=self._namespace or "*",
            resource_version=self._resource_version or None,
        )
        try:
            async with watch.Watch().stream(fn, **kwargs) as stream:
                async for event in stream:
                    self.handle_event(event)
        except ApiException as exc:
            if exc.status == _GONE:
                self._resource_version = ""
            raise TransportError(f"pod watch failed with status {exc.status}: {exc.reason}") from exc

    def handle_event(self, event: dict[str, Any]) -> None:
        """Translate one watch event into a dispatcher notification."""
        event_type = event.get("type", "")
        raw = event.get("raw_object") or {}
        if event_type == "ERROR":
            if raw.get("code") == _GONE:
                self._resource_version = ""
            raise TransportError(f"watch returned error: {raw.get('message', raw)}")

        metadata = raw.get("metadata") or {}
        resource_version = metadata.get("resourceVersion")
        if resource_version:
            self._resource_version = str(resource_version)
        name = str(metadata.get("name", ""))
        namespace = str(metadata.get("namespace", ""))
        if not name:
            return
        self._dispatcher.enqueue(PodIdentity(namespace=namespace, name=name))
