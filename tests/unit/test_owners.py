"""Tests for owner attribution and release naming."""

from __future__ import annotations

from dataclasses import replace

import structlog

from kubeincident.controller.client import TransportError
from kubeincident.controller.owners import is_job_owned, release_name_for, resolve_owner
from tests.factories import FakeReader, make_pod, make_replica_set, owner

_log = structlog.get_logger()


class TestResolveOwner:
    async def test_no_owner_references(self) -> None:
        reader = FakeReader()
        assert await resolve_owner(make_pod(), reader, _log) == ("", "")
        assert reader.rs_calls == 0

    async def test_direct_owner_is_reported_as_is(self) -> None:
        reader = FakeReader()
        pod = make_pod(owners=[owner("StatefulSet", "db")])
        assert await resolve_owner(pod, reader, _log) == ("db", "StatefulSet")
        assert reader.rs_calls == 0

    async def test_replica_set_is_looked_through(self) -> None:
        reader = FakeReader(replica_sets=[make_replica_set("api-7b4f8c6d", owners=[owner("Deployment", "api")])])
        pod = make_pod(owners=[owner("ReplicaSet", "api-7b4f8c6d")])
        assert await resolve_owner(pod, reader, _log) == ("api", "Deployment")
        assert reader.rs_calls == 1

    def _chained_reader(self) -> FakeReader:
        return FakeReader(
            replica_sets=[
                make_replica_set("outer", owners=[owner("ReplicaSet", "inner")]),
                make_replica_set("inner", owners=[owner("Deployment", "api")]),
            ]
        )

    async def test_only_one_hop(self) -> None:
        reader = self._chained_reader()
        pod = make_pod(owners=[owner("ReplicaSet", "outer")])
        assert await resolve_owner(pod, reader, _log) == ("inner", "ReplicaSet")
        assert reader.rs_calls == 1

    async def test_replica_set_without_owner(self) -> None:
        reader = FakeReader(replica_sets=[make_replica_set("orphan-rs")])
        pod = make_pod(owners=[owner("ReplicaSet", "orphan-rs")])
        assert await resolve_owner(pod, reader, _log) == ("", "")

    async def test_missing_replica_set_degrades(self) -> None:
        reader = FakeReader()
        pod = make_pod(owners=[owner("ReplicaSet", "gone")])
        assert await resolve_owner(pod, reader, _log) == ("", "")

    async def test_transport_error_degrades(self) -> None:
        reader = FakeReader(rs_error=TransportError("connection reset"))
        pod = make_pod(owners=[owner("ReplicaSet", "api-7b4f8c6d")])
        assert await resolve_owner(pod, reader, _log) == ("", "")

    async def test_only_first_owner_is_considered(self) -> None:
        reader = FakeReader()
        pod = make_pod(owners=[owner("DaemonSet", "agent"), owner("Job", "batch")])
        assert await resolve_owner(pod, reader, _log) == ("agent", "DaemonSet")


class TestReleaseName:
    def test_label_wins(self) -> None:
        pod = make_pod(labels={"app.kubernetes.io/instance": "payments"})
        assert release_name_for(pod, "api") == "payments"

    def test_annotation_next(self) -> None:
        pod = replace(make_pod(), annotations={"meta.helm.sh/release-name": "checkout"})
        assert release_name_for(pod, "api") == "checkout"

    def test_owner_name_then_pod_name(self) -> None:
        pod = make_pod(name="standalone")
        assert release_name_for(pod, "api") == "api"
        assert release_name_for(pod, "") == "standalone"


def test_is_job_owned() -> None:
    assert is_job_owned("Job")
    assert not is_job_owned("CronJob")
    assert not is_job_owned("")
