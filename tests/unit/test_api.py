"""Tests for the incident query API."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from hypothesis import given, settings
from hypothesis import strategies as st

from kubeincident import __version__
from kubeincident.api.app import create_app
from kubeincident.models.workload import PodIdentity
from kubeincident.store import IncidentStore
from tests.factories import make_event

INCIDENT_ID = "incident:api:default"


def _populated_store() -> IncidentStore:
    store = IncidentStore()
    store.add_event(make_event(reason="Waiting: CrashLoopBackOff", message="back-off restarting"))
    store.add_event(make_event(name="worker-0", release_name="worker", reason="Terminated: Error", message="exit 2"))
    return store


def _client(store: IncidentStore | None = None) -> TestClient:
    config = SimpleNamespace(cluster_name="prod-eu")
    return TestClient(create_app(store=store or _populated_store(), config=config))


class TestHealth:
    def test_ok(self) -> None:
        resp = _client().get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__, "cluster": "prod-eu", "incidents": 2}


class TestIncidentList:
    def test_lists_every_incident(self) -> None:
        resp = _client().get("/api/v1/incidents")
        assert resp.status_code == 200
        incidents = resp.json()["incidents"]
        assert [i["id"] for i in incidents] == [INCIDENT_ID, "incident:worker:default"]
        assert incidents[0] == {
            "id": INCIDENT_ID,
            "release_name": "api",
            "latest_state": "ONGOING",
            "latest_reason": "Waiting: CrashLoopBackOff",
            "latest_message": "back-off restarting",
        }

    def test_empty_store(self) -> None:
        resp = _client(IncidentStore()).get("/api/v1/incidents")
        assert resp.json() == {"incidents": []}

    def test_by_release(self) -> None:
        client = _client()
        resp = client.get("/api/v1/releases/default/worker/incidents")
        assert [i["id"] for i in resp.json()["incidents"]] == ["incident:worker:default"]
        resp = client.get("/api/v1/releases/staging/worker/incidents")
        assert resp.json()["incidents"] == []


class TestIncidentDetail:
    def test_detail(self) -> None:
        store = _populated_store()
        log_id = store.put_logs(PodIdentity("default", "api-7b4f8c6d-x2kj"), "app", "panic: nil map")
        resp = _client(store).get(f"/api/v1/incidents/{INCIDENT_ID}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["incident_id"] == INCIDENT_ID
        assert body["release_name"] == "api"
        assert body["namespace"] == "default"
        assert body["latest_state"] == "ONGOING"
        assert body["log_ids"] == [log_id]
        assert body["events"][0]["pod_status"] == "Type: Ready, Status: False"
        assert body["events"][0]["event_type"] == "Critical"

    def test_resolved_state(self) -> None:
        store = _populated_store()
        store.add_event(make_event(critical=False, reason="", message="started", condition_status="True"))
        body = _client(store).get(f"/api/v1/incidents/{INCIDENT_ID}").json()
        assert body["latest_state"] == "RESOLVED"
        assert body["latest_message"] == "started"

    def test_unknown_incident(self) -> None:
        resp = _client().get("/api/v1/incidents/incident:nope:default")
        assert resp.status_code == 404
        assert resp.json() == {"error": "INCIDENT_NOT_FOUND", "detail": "invalid incident ID"}


class TestLogs:
    def test_get_logs(self) -> None:
        store = _populated_store()
        log_id = store.put_logs(PodIdentity("default", "worker-0"), "", "line 1\nline 2")
        resp = _client(store).get(f"/api/v1/logs/{log_id}")
        assert resp.status_code == 200
        assert resp.json() == {"contents": "line 1\nline 2"}

    def test_missing_logs(self) -> None:
        resp = _client().get("/api/v1/logs/logs:default:ghost:7")
        assert resp.status_code == 404
        assert resp.json()["error"] == "LOGS_NOT_FOUND"


def test_unhandled_error_is_enveloped() -> None:
    store = MagicMock()
    store.list_incident_ids.side_effect = RuntimeError("boom")
    client = TestClient(create_app(store=store), raise_server_exceptions=False)
    resp = client.get("/api/v1/incidents")
    assert resp.status_code == 500
    assert resp.json() == {"error": "INTERNAL_ERROR", "detail": "internal server error"}


def test_metrics_endpoint() -> None:
    resp = _client().get("/metrics/")
    assert resp.status_code == 200
    assert "kubeincident_" in resp.text


_segment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-:_", min_size=1, max_size=40)


@settings(max_examples=50, deadline=None)
@given(incident_id=_segment)
def test_arbitrary_incident_ids_never_500(incident_id: str) -> None:
    resp = _client().get(f"/api/v1/incidents/{incident_id}")
    assert resp.status_code in (200, 404)
    body = resp.json()
    if resp.status_code == 404:
        assert set(body) == {"error", "detail"}
