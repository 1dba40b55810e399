"""Container log collection for classified pods."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kubeincident.controller.client import NotFoundError, TransportError
from kubeincident.models.workload import PodIdentity
from kubeincident.observability.logging import get_logger

if TYPE_CHECKING:
    from kubernetes_asyncio.client import CoreV1Api  # type: ignore[import-untyped]

_log = get_logger("processor.logs")


class LogFetcher:
    """Reads the tail of a pod's container logs.

    A named container the pod does not declare (the API answers 400) is
    retried once without a name, which succeeds for single-container pods.
    That is how batch pods requested under the logical ``job`` name are
    collected.
    """

    def __init__(self, core_v1: CoreV1Api, tail_lines: int = 100) -> None:
        self._core_v1 = core_v1
        self._tail_lines = tail_lines

    async def fetch(self, identity: PodIdentity, container: str = "") -> str:
        """Return the log tail.

        Raises:
            NotFoundError:  the pod or container has no logs to read.
            TransportError: the read failed and may succeed later.
        """
        try:
            return await self._read(identity, container)
        except ApiException as exc:
            if exc.status == 400 and container:
                _log.debug("container not found in pod, fetching default logs", pod=str(identity), container=container)
                try:
                    return await self._read(identity, "")
                except ApiException as retry_exc:
                    raise _translate(retry_exc, identity, "") from retry_exc
            raise _translate(exc, identity, container) from exc
        except (aiohttp.ClientError, TimeoutError, OSError) as exc:
            raise TransportError(f"reading logs of {identity} failed: {exc}") from exc

    async def _read(self, identity: PodIdentity, container: str) -> str:
        kwargs: dict[str, object] = {
            "name": identity.name,
            "namespace": identity.namespace,
            "tail_lines": self._tail_lines,
        }
        if container:
            kwargs["container"] = container
        result = await self._core_v1.read_namespaced_pod_log(**kwargs)
        return str(result)


def _translate(exc: ApiException, identity: PodIdentity, container: str) -> Exception:
    target = f"{identity}/{container}" if container else str(identity)
    if exc.status in (400, 404):
        return NotFoundError(f"no logs for {target}: {exc.reason}")
    return TransportError(f"reading logs of {target} failed with status {exc.status}: {exc.reason}")
