"""Tests for the kubernetes-asyncio read adapters and their error mapping."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from kubernetes_asyncio.client.rest import ApiException

from kubeincident.controller.client import KubernetesClusterReader, NotFoundError, TransportError
from kubeincident.models.workload import PodIdentity
from kubeincident.processor.logs import LogFetcher
from tests.factories import owner, pod_dict

POD = PodIdentity(namespace="default", name="api-7b4f8c6d-x2kj")


def _reader(pod: object = None, replica_set: object = None) -> KubernetesClusterReader:
    core_v1 = MagicMock()
    core_v1.read_namespaced_pod = AsyncMock(return_value=pod)
    apps_v1 = MagicMock()
    apps_v1.read_namespaced_replica_set = AsyncMock(return_value=replica_set)
    return KubernetesClusterReader(MagicMock(), core_v1, apps_v1)


class TestKubernetesClusterReader:
    async def test_get_pod(self) -> None:
        reader = _reader(pod=pod_dict(phase="Failed"))
        pod = await reader.get_pod(POD)
        assert pod.identity == POD
        assert pod.phase == "Failed"

    async def test_typed_objects_are_serialized(self) -> None:
        api_client = MagicMock()
        api_client.sanitize_for_serialization.return_value = pod_dict(phase="Pending")
        core_v1 = MagicMock()
        core_v1.read_namespaced_pod = AsyncMock(return_value=object())
        reader = KubernetesClusterReader(api_client, core_v1, MagicMock())
        assert (await reader.get_pod(POD)).phase == "Pending"
        api_client.sanitize_for_serialization.assert_called_once()

    async def test_get_replica_set(self) -> None:
        raw = {"metadata": {"name": "api-rs", "namespace": "default", "ownerReferences": [owner("Deployment", "api")]}}
        rs = await _reader(replica_set=raw).get_replica_set("default", "api-rs")
        assert rs.kind == "ReplicaSet"
        assert rs.owner_references[0].name == "api"

    async def test_not_found(self) -> None:
        reader = _reader()
        reader._core_v1.read_namespaced_pod.side_effect = ApiException(status=404, reason="Not Found")
        with pytest.raises(NotFoundError):
            await reader.get_pod(POD)

    @pytest.mark.parametrize(
        "error",
        [
            ApiException(status=500, reason="Internal Server Error"),
            ApiException(status=403, reason="Forbidden"),
            aiohttp.ClientConnectionError("reset"),
            TimeoutError(),
        ],
    )
    async def test_transport_errors(self, error: Exception) -> None:
        reader = _reader()
        reader._apps_v1.read_namespaced_replica_set.side_effect = error
        with pytest.raises(TransportError):
            await reader.get_replica_set("default", "api-rs")


class TestLogFetcher:
    def _fetcher(self, *results: object) -> tuple[LogFetcher, AsyncMock]:
        read = AsyncMock(side_effect=list(results))
        core_v1 = MagicMock()
        core_v1.read_namespaced_pod_log = read
        return LogFetcher(core_v1, tail_lines=50), read

    async def test_named_container(self) -> None:
        fetcher, read = self._fetcher("line")
        assert await fetcher.fetch(POD, "web") == "line"
        read.assert_awaited_once_with(name=POD.name, namespace="default", tail_lines=50, container="web")

    async def test_default_container(self) -> None:
        fetcher, read = self._fetcher("line")
        await fetcher.fetch(POD)
        assert "container" not in read.await_args.kwargs

    async def test_unknown_container_retries_unfiltered(self) -> None:
        fetcher, read = self._fetcher(ApiException(status=400, reason="Bad Request"), "default logs")
        assert await fetcher.fetch(POD, "job") == "default logs"
        assert read.await_count == 2
        assert "container" not in read.await_args.kwargs

    async def test_unfiltered_retry_failure_is_not_found(self) -> None:
        fetcher, _ = self._fetcher(
            ApiException(status=400, reason="Bad Request"),
            ApiException(status=400, reason="a container name must be specified"),
        )
        with pytest.raises(NotFoundError):
            await fetcher.fetch(POD, "job")

    async def test_pod_gone(self) -> None:
        fetcher, _ = self._fetcher(ApiException(status=404, reason="Not Found"))
        with pytest.raises(NotFoundError):
            await fetcher.fetch(POD, "web")

    async def test_server_error(self) -> None:
        fetcher, _ = self._fetcher(ApiException(status=503, reason="Service Unavailable"))
        with pytest.raises(TransportError):
            await fetcher.fetch(POD)
