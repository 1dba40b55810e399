"""Application bootstrap for kubeincident.

Wires the components in dependency order and owns the asyncio lifecycle.

Startup:  config, logging, cluster client, incident store, notifications,
          work queue, reconciler, dispatcher + pod watcher, REST API.
Shutdown: the reverse. A component that fails to stop is logged and skipped
          so the rest still get a chance to shut down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from kubeincident.config import load_config
from kubeincident.models.config import AgentConfig
from kubeincident.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog
    import uvicorn

    from kubeincident.controller.reconciler import PodReconciler
    from kubeincident.controller.watcher import KeyedDispatcher, PodWatcher
    from kubeincident.notifications.manager import NotificationDispatcher
    from kubeincident.processor.queue import EventProcessor
    from kubeincident.store.incidents import IncidentStore

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


async def _load_cluster_config(log: structlog.stdlib.BoundLogger) -> None:
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    try:
        k8s_config.load_incluster_config()
        log.info("using in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        log.info("using kubeconfig")


class AgentApp:
    """Owns every long-lived component of the agent.

    ``stop()`` is idempotent and safe to call after a partial start.
    """

    def __init__(self) -> None:
        self.config: AgentConfig | None = None
        self.stopped = asyncio.Event()

        self._api_client: Any = None
        self._core_v1: Any = None
        self._apps_v1: Any = None
        self._store: IncidentStore | None = None
        self._notifications: NotificationDispatcher | None = None
        self._processor: EventProcessor | None = None
        self._reconciler: PodReconciler | None = None
        self._dispatcher: KeyedDispatcher | None = None
        self._watcher: PodWatcher | None = None
        self._rest_server: uvicorn.Server | None = None
        self._rest_task: asyncio.Task[None] | None = None

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up.

        Raises:
            _ComponentError: a mandatory component could not start.
        """
        config = self.config = load_config()
        setup_logging(config.log.level, cluster=config.cluster_name)
        log = self._log = get_logger("app")
        log.info("agent starting", version=_agent_version(), cluster=config.cluster_name or None)

        await self._connect_cluster(log)
        self._build_store(config)
        self._build_notifications(config, log)
        await self._start_work_queue(config)
        self._build_reconciler(config)
        await self._start_watch(config, log)
        self._start_rest(config, log)

        self._running = True
        log.info("agent started", port=config.api.port)

    async def _connect_cluster(self, log: structlog.stdlib.BoundLogger) -> None:
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            await _load_cluster_config(log)
            self._api_client = k8s_client.ApiClient()
            self._core_v1 = k8s_client.CoreV1Api(self._api_client)
            self._apps_v1 = k8s_client.AppsV1Api(self._api_client)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _build_store(self, config: AgentConfig) -> None:
        from kubeincident.store.incidents import IncidentStore

        self._store = IncidentStore(max_events_per_incident=config.store.max_events_per_incident)

    def _build_notifications(self, config: AgentConfig, log: structlog.stdlib.BoundLogger) -> None:
        """Notifications are optional: a broken channel setup only disables alerting."""
        from kubeincident.notifications import build_notification_dispatcher

        try:
            self._notifications = build_notification_dispatcher(config=config.notifications)
        except Exception as exc:
            log.warning("notifications disabled", error=str(exc))
            self._notifications = None

    async def _start_work_queue(self, config: AgentConfig) -> None:
        try:
            from kubeincident.processor.logs import LogFetcher
            from kubeincident.processor.queue import EventProcessor

            assert self._store is not None
            self._processor = EventProcessor(
                store=self._store,
                log_fetcher=LogFetcher(self._core_v1, tail_lines=config.store.log_tail_lines),
                notifier=self._notifications,
                max_size=config.queue.max_size,
                workers=config.queue.workers,
                max_retries=config.queue.max_retries,
            )
            await self._processor.start()
        except Exception as exc:
            raise _ComponentError("processor", exc) from exc

    def _build_reconciler(self, config: AgentConfig) -> None:
        from kubeincident.controller.client import KubernetesClusterReader
        from kubeincident.controller.reconciler import PodReconciler

        assert self._processor is not None
        self._reconciler = PodReconciler(
            KubernetesClusterReader(self._api_client, self._core_v1, self._apps_v1),
            self._processor,
            cluster_name=config.cluster_name,
            requeue_delay=config.controller.requeue_delay_seconds,
        )

    async def _start_watch(self, config: AgentConfig, log: structlog.stdlib.BoundLogger) -> None:
        try:
            from kubeincident.controller.watcher import KeyedDispatcher, PodWatcher

            assert self._reconciler is not None
            self._dispatcher = KeyedDispatcher(
                handler=self._reconciler.reconcile,
                max_concurrency=config.controller.max_concurrent_reconciles,
            )
            await self._dispatcher.start()
            self._watcher = PodWatcher(
                self._core_v1,
                self._dispatcher,
                namespace=config.controller.watch_namespace,
                timeout_seconds=config.controller.watch_timeout_seconds,
            )
            await self._watcher.start()
        except Exception as exc:
            raise _ComponentError("watcher", exc) from exc
        log.info(
            "watching pods",
            namespace=config.controller.watch_namespace or "*",
            workers=config.controller.max_concurrent_reconciles,
        )

    def _start_rest(self, config: AgentConfig, log: structlog.stdlib.BoundLogger) -> None:
        try:
            import uvicorn

            from kubeincident.api import create_app

            assert self._store is not None
            server = uvicorn.Server(
                uvicorn.Config(
                    app=create_app(store=self._store, config=config),
                    host="0.0.0.0",
                    port=config.api.port,
                    log_config=None,
                    access_log=False,
                )
            )
            self._rest_task = asyncio.create_task(server.serve(), name="rest-server")
            self._rest_server = server
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc
        log.info("query api listening", port=config.api.port)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop everything that was started, newest first."""
        if self._log is None:
            self.stopped.set()
            return
        log = self._log
        was_running, self._running = self._running, False
        log.info("agent stopping", was_running=was_running)

        if self._rest_task is not None and not self._rest_task.done():
            self._rest_task.cancel()
            await asyncio.gather(self._rest_task, return_exceptions=True)
        self._rest_task = None
        self._rest_server = None

        # Watcher first so no new passes start, then drain order follows data flow.
        for name, component in (
            ("watcher", self._watcher),
            ("dispatcher", self._dispatcher),
            ("processor", self._processor),
            ("notifications", self._notifications),
        ):
            await self._stop_component(name, component)
        self._watcher = None
        self._dispatcher = None
        self._processor = None
        self._notifications = None

        if self._api_client is not None:
            try:
                await self._api_client.close()
            except Exception as exc:
                log.debug("closing k8s client failed", error=str(exc))
            self._api_client = None

        log.info("agent stopped")
        self.stopped.set()

    async def _stop_component(self, name: str, component: object | None) -> None:
        stop = getattr(component, "stop", None)
        if stop is None:
            return
        log = self._log or get_logger("app")
        try:
            await asyncio.wait_for(stop(), timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop failed", component=name, error=str(exc))


def _agent_version() -> str:
    from kubeincident import __version__

    return __version__


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def main() -> None:
    """Run the agent until SIGTERM/SIGINT."""
    app = AgentApp()
    loop = asyncio.get_running_loop()
    shutdown: asyncio.Task[None] | None = None

    def _request_shutdown() -> None:
        nonlocal shutdown
        if shutdown is None:
            shutdown = asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.stopped.wait()
    except _ComponentError as exc:
        get_logger("app").critical("fatal startup error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
