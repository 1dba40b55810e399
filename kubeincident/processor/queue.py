"""Asynchronous work queue behind the reconciler's dispatch boundary.

The reconciler hands over two kinds of work per pass: a classified event,
which is correlated into the incident store, and a log collection request.
Both are queued without blocking. Workers retry transport failures with
exponential back-off; the reconciler itself never retries.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum

import structlog

from kubeincident.controller.client import NotFoundError, TransportError
from kubeincident.models.alerts import IncidentAlert
from kubeincident.models.events import ClassifiedEvent
from kubeincident.models.workload import PodIdentity
from kubeincident.notifications.manager import NotificationDispatcher
from kubeincident.observability.metrics import log_fetch_total, work_items_dropped_total, work_queue_depth
from kubeincident.processor.base import EnqueueDetailOptions
from kubeincident.processor.logs import LogFetcher
from kubeincident.store.incidents import IncidentStore, IncidentTransition

_log = structlog.get_logger(component="processor.queue")

_NOTIFY_TRANSITIONS = frozenset(
    {IncidentTransition.OPENED, IncidentTransition.RESOLVED, IncidentTransition.REOPENED}
)


class WorkKind(StrEnum):
    EVENT = "event"
    LOGS = "logs"


@dataclass
class WorkItem:
    kind: WorkKind
    identity: PodIdentity
    event: ClassifiedEvent | None = None
    options: EnqueueDetailOptions | None = None
    attempts: int = 0


class EventProcessor:
    """Processor implementation backed by a bounded asyncio queue.

    Args:
        store:        Incident store receiving events and logs.
        log_fetcher:  Container log reader; log requests are dropped when None.
        notifier:     Receives an IncidentAlert on open/resolve/reopen.
        max_size:     Queue capacity; items beyond it are dropped.
        workers:      Number of concurrent worker tasks.
        max_retries:  Retries per item after a TransportError.
    """

    def __init__(
        self,
        store: IncidentStore,
        log_fetcher: LogFetcher | None = None,
        notifier: NotificationDispatcher | None = None,
        max_size: int = 1000,
        workers: int = 2,
        max_retries: int = 3,
        retry_base: float = 0.5,
        retry_max: float = 30.0,
    ) -> None:
        self._store = store
        self._log_fetcher = log_fetcher
        self._notifier = notifier
        self._queue: asyncio.Queue[WorkItem] = asyncio.Queue(maxsize=max_size)
        self._num_workers = workers
        self._max_retries = max_retries
        self._retry_base = retry_base
        self._retry_max = retry_max
        self._workers: list[asyncio.Task[None]] = []
        self._timers: set[asyncio.TimerHandle] = set()

    # ------------------------------------------------------------------
    # Processor protocol
    # ------------------------------------------------------------------

    def add_to_work_queue(self, identity: PodIdentity, event: ClassifiedEvent) -> None:
        self._put(WorkItem(kind=WorkKind.EVENT, identity=identity, event=event))

    def enqueue_details(self, identity: PodIdentity, options: EnqueueDetailOptions) -> None:
        if self._log_fetcher is None:
            return
        self._put(WorkItem(kind=WorkKind.LOGS, identity=identity, options=options))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        for i in range(self._num_workers):
            self._workers.append(asyncio.create_task(self._worker(), name=f"work-queue-{i}"))
        _log.info("work_queue_started", workers=self._num_workers, max_size=self._queue.maxsize)

    async def stop(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def join(self) -> None:
        """Wait until every queued item has been processed."""
        await self._queue.join()

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _put(self, item: WorkItem) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            work_items_dropped_total.labels(kind=item.kind.value, reason="queue_full").inc()
            _log.warning("work_item_dropped", kind=item.kind.value, pod=str(item.identity), reason="queue_full")
        work_queue_depth.set(self._queue.qsize())

    def _put_later(self, item: WorkItem, delay: float) -> None:
        loop = asyncio.get_running_loop()
        timer: asyncio.TimerHandle | None = None

        def _fire() -> None:
            if timer is not None:
                self._timers.discard(timer)
            self._put(item)

        timer = loop.call_later(delay, _fire)
        self._timers.add(timer)

    async def _worker(self) -> None:
        while True:
            item = await self._queue.get()
            work_queue_depth.set(self._queue.qsize())
            try:
                await self._handle(item)
            finally:
                self._queue.task_done()

    async def _handle(self, item: WorkItem) -> None:
        try:
            if item.kind == WorkKind.EVENT:
                self._process_event(item)
            else:
                await self._process_logs(item)
        except TransportError as exc:
            if item.attempts >= self._max_retries:
                work_items_dropped_total.labels(kind=item.kind.value, reason="retries_exhausted").inc()
                _log.error(
                    "work_item_retries_exhausted",
                    kind=item.kind.value,
                    pod=str(item.identity),
                    attempts=item.attempts,
                    error=str(exc),
                )
                return
            item.attempts += 1
            delay = min(self._retry_base * (2 ** (item.attempts - 1)), self._retry_max)
            _log.warning(
                "work_item_retry_scheduled",
                kind=item.kind.value,
                pod=str(item.identity),
                attempt=item.attempts,
                retry_in=delay,
                error=str(exc),
            )
            self._put_later(item, delay)
        except Exception as exc:  # noqa: BLE001
            _log.error("work_item_failed", kind=item.kind.value, pod=str(item.identity), error=str(exc))

    def _process_event(self, item: WorkItem) -> None:
        assert item.event is not None
        incident, transition = self._store.add_event(item.event)
        if incident is None or self._notifier is None or transition not in _NOTIFY_TRANSITIONS:
            return
        self._notifier.dispatch(IncidentAlert.from_incident(incident, item.event, transition.value))

    async def _process_logs(self, item: WorkItem) -> None:
        assert self._log_fetcher is not None
        options = item.options or EnqueueDetailOptions()
        containers = options.container_names or ("",)
        for i, container in enumerate(containers):
            try:
                contents = await self._log_fetcher.fetch(item.identity, container)
            except NotFoundError as exc:
                log_fetch_total.labels(success="false").inc()
                _log.info("logs_unavailable", pod=str(item.identity), container=container, error=str(exc))
                continue
            except TransportError:
                log_fetch_total.labels(success="false").inc()
                # A retry resumes at this container; earlier ones are already stored.
                item.options = EnqueueDetailOptions(container_names=containers[i:])
                raise
            log_fetch_total.labels(success="true").inc()
            self._store.put_logs(item.identity, container, contents)
