"""Cluster read boundary used by the reconciler.

The reconciler only needs two reads: the pod being reconciled and, for the
owner hop, a ReplicaSet. ``KubernetesClusterReader`` implements both with
kubernetes-asyncio and translates client failures into the two error kinds
the core understands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import aiohttp
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kubeincident.models.workload import OwnedObject, PodIdentity, WorkloadInstance

if TYPE_CHECKING:
    from kubernetes_asyncio.client import ApiClient, AppsV1Api, CoreV1Api  # type: ignore[import-untyped]


class ClusterError(Exception):
    """Base class for cluster read failures."""


class NotFoundError(ClusterError):
    """The requested object does not exist (for a pod: it was deleted)."""


class TransportError(ClusterError):
    """The read failed for a reason worth retrying later."""


class ClusterReader(Protocol):
    """Minimal read interface required by the reconciler and owner resolver."""

    async def get_pod(self, identity: PodIdentity) -> WorkloadInstance: ...

    async def get_replica_set(self, namespace: str, name: str) -> OwnedObject: ...


class KubernetesClusterReader:
    """ClusterReader backed by kubernetes-asyncio typed APIs."""

    def __init__(self, api_client: ApiClient, core_v1: CoreV1Api, apps_v1: AppsV1Api) -> None:
        self._api_client = api_client
        self._core_v1 = core_v1
        self._apps_v1 = apps_v1

    async def get_pod(self, identity: PodIdentity) -> WorkloadInstance:
        obj = await self._read(
            self._core_v1.read_namespaced_pod,
            name=identity.name,
            namespace=identity.namespace,
            what=f"Pod/{identity}",
        )
        return WorkloadInstance.from_dict(self._to_dict(obj))

    async def get_replica_set(self, namespace: str, name: str) -> OwnedObject:
        obj = await self._read(
            self._apps_v1.read_namespaced_replica_set,
            name=name,
            namespace=namespace,
            what=f"ReplicaSet/{namespace}/{name}",
        )
        return OwnedObject.from_dict(self._to_dict(obj), kind="ReplicaSet")

    async def _read(self, fn: Any, *, name: str, namespace: str, what: str) -> Any:
        try:
            return await fn(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise NotFoundError(f"{what} not found") from exc
            raise TransportError(f"reading {what} failed with status {exc.status}: {exc.reason}") from exc
        except (aiohttp.ClientError, TimeoutError, OSError) as exc:
            raise TransportError(f"reading {what} failed: {exc}") from exc

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]
