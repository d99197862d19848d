from __future__ import annotations

import base64
import json

import pytest
from fastapi.testclient import TestClient

from labelgate.api.server import PING_PATH, REVIEW_PATH, create_app
from labelgate.core.policy_engine.policy_store import PolicyStore


@pytest.fixture
def client() -> TestClient:
    app = create_app(PolicyStore(match_labels={"team": "payments"}))
    return TestClient(app)


def _review(kind: str, obj, *, uid: str = "c0ffee", name: str = "res-1") -> dict:
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": uid,
            "kind": {"group": "", "version": "v1", "kind": kind},
            "name": name,
            "namespace": "default",
            "operation": "CREATE",
            "object": obj,
        },
    }


def _pod(labels) -> dict:
    return {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "res-1", "labels": labels}}


def test_ping_returns_fixed_payload(client: TestClient) -> None:
    r = client.get(PING_PATH)
    assert r.status_code == 200
    assert r.content == b'{"status":"OK","Message":"PONG"}'
    assert r.headers.get("x-request-id")


def test_matching_pod_is_admitted(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("Pod", _pod({"team": "payments"})))
    assert r.status_code == 200
    data = r.json()
    assert data["apiVersion"] == "admission.k8s.io/v1"
    assert data["kind"] == "AdmissionReview"
    assert data["response"]["uid"] == "c0ffee"
    assert data["response"]["allowed"] is True
    assert "result" not in data["response"]
    assert "request" not in data


def test_non_matching_pod_is_rejected(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("Pod", _pod({"team": "checkout"})))
    assert r.status_code == 200
    resp = r.json()["response"]
    assert resp["allowed"] is False
    assert resp["result"]["message"] == "admission rejected by policy"
    assert resp["status"]["message"] == "admission rejected by policy"


def test_unsupported_kind_passes_through(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("ConfigMap", {"data": {"k": "v"}}))
    assert r.status_code == 200
    resp = r.json()["response"]
    assert resp["allowed"] is True
    assert resp["result"]["message"] == "Passthrough"


def test_invalid_deployment_body_is_a_server_error(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("Deployment", {"metadata": {"labels": "oops"}}))
    assert r.status_code == 500
    data = r.json()
    assert data["status"] == "Internal Server Error"
    assert "failed to review request" in data["Message"]
    assert "Deployment" in data["Message"]
    assert "response" not in data


def test_empty_body_is_a_server_error(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, content=b"")
    assert r.status_code == 500
    data = r.json()
    assert data["status"] == "Internal Server Error"
    assert "failed to read admission review request" in data["Message"]


@pytest.mark.parametrize(
    "body",
    [
        b"{not json",
        b"[]",
        b'{"apiVersion": "admission.k8s.io/v1"}',
        b'{"request": {"name": "x"}}',
        b'{"request": {"kind": {"group": ""}}}',
        b'{"request": {"kind": {"kind": 5}}}',
    ],
)
def test_malformed_envelope_is_a_client_error(client: TestClient, body: bytes) -> None:
    r = client.post(REVIEW_PATH, content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    data = r.json()
    assert data["status"] == "Bad Request"
    assert data["Message"].startswith("failed to unmarshal admission review request")


def test_base64_object_is_decoded(client: TestClient) -> None:
    raw = json.dumps(_pod({"team": "payments"})).encode()
    encoded = base64.b64encode(raw).decode()

    r1 = client.post(REVIEW_PATH, json=_review("Pod", encoded))
    r2 = client.post(REVIEW_PATH, json=_review("Pod", {"raw": encoded}))

    assert r1.json()["response"]["allowed"] is True
    assert r2.json()["response"]["allowed"] is True


def test_missing_object_for_supported_kind_is_a_server_error(client: TestClient) -> None:
    envelope = _review("Pod", None)
    r = client.post(REVIEW_PATH, json=envelope)
    assert r.status_code == 500


def test_kind_casing_is_ignored(client: TestClient) -> None:
    for kind in ("Pod", "pod", "POD"):
        r = client.post(REVIEW_PATH, json=_review(kind, _pod({"team": "payments"})))
        assert r.json()["response"]["allowed"] is True


def test_server_keeps_serving_after_failures(client: TestClient) -> None:
    assert client.post(REVIEW_PATH, content=b"").status_code == 500
    assert client.post(REVIEW_PATH, content=b"{").status_code == 400
    r = client.post(REVIEW_PATH, json=_review("Service", {"metadata": {"labels": {"team": "payments"}}}))
    assert r.status_code == 200
    assert r.json()["response"]["allowed"] is True


def test_review_is_logged_once_per_request(client: TestClient, caplog) -> None:
    caplog.set_level("INFO", logger="labelgate.api")
    client.post(REVIEW_PATH, json=_review("Pod", _pod({"team": "checkout"}), name="web-0"))

    lines = [r for r in caplog.records if r.getMessage().startswith("admission_review")]
    assert len(lines) == 1
    assert lines[0].kind == "Pod"
    assert lines[0].resource_name == "web-0"
    assert "verdict=deny" in lines[0].getMessage()


def test_get_on_review_path_is_not_allowed(client: TestClient) -> None:
    assert client.get(REVIEW_PATH).status_code == 405


def test_non_base64_string_object_passes_through_for_unsupported_kind(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("ConfigMap", "not base64!!"))
    assert r.status_code == 200
    resp = r.json()["response"]
    assert resp["allowed"] is True
    assert resp["result"]["message"] == "Passthrough"


def test_non_base64_string_object_is_a_decode_failure_for_supported_kind(client: TestClient) -> None:
    r = client.post(REVIEW_PATH, json=_review("Pod", "not base64!!"))
    assert r.status_code == 500
    assert "failed to decode Pod" in r.json()["Message"]


def test_review_log_carries_request_id_and_decision(client: TestClient, caplog) -> None:
    caplog.set_level("INFO", logger="labelgate.api")
    r = client.post(
        REVIEW_PATH,
        json=_review("Pod", _pod({"team": "payments"})),
        headers={"X-Request-ID": "req-42"},
    )
    assert r.headers["x-request-id"] == "req-42"

    line = next(rec for rec in caplog.records if rec.getMessage().startswith("admission_review"))
    assert line.request_id == "req-42"
    assert "request_id=req-42" in line.getMessage()
    assert line.decision == {
        "status": "ALLOW",
        "allowed": True,
        "reason": "",
        "matched_label": ["team", "payments"],
    }


@pytest.mark.parametrize("rid", ["has space", "bad;value", "<script>", "x" * 200, ""])
def test_unsafe_request_id_is_replaced(client: TestClient, rid: str) -> None:
    r = client.get(PING_PATH, headers={"X-Request-ID": rid})
    echoed = r.headers["x-request-id"]
    assert echoed != rid
    assert len(echoed) == 32
