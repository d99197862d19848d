from __future__ import annotations

import json

import pytest

from labelgate.core.decoding import (
    BUILTIN_KINDS,
    KindRegistry,
    default_registry,
    extract_labels,
)
from labelgate.core.policy_engine.policy_exceptions import DecodeFailure, PolicyConfigurationError


def _resource(kind: str, labels=None, spec=None) -> bytes:
    metadata = {"name": f"{kind.lower()}-1", "namespace": "default"}
    if labels is not None:
        metadata["labels"] = labels
    body = {"apiVersion": "v1", "kind": kind, "metadata": metadata}
    if spec is not None:
        body["spec"] = spec
    return json.dumps(body).encode("utf-8")


def test_builtin_kinds_are_registered() -> None:
    registry = default_registry()
    assert registry.kinds() == [
        "pod",
        "deployment",
        "replicaset",
        "statefulset",
        "service",
        "daemonset",
    ]


@pytest.mark.parametrize("kind", sorted(BUILTIN_KINDS))
def test_labels_are_extracted_for_every_builtin_kind(kind: str) -> None:
    labels = extract_labels(kind, _resource(kind, labels={"team": "payments"}))
    assert labels == {"team": "payments"}


def test_missing_labels_are_an_empty_mapping() -> None:
    assert extract_labels("Pod", _resource("Pod")) == {}
    assert extract_labels("Pod", b'{"metadata": {"labels": null}}') == {}
    assert extract_labels("Service", b"{}") == {}


def test_unknown_fields_are_ignored() -> None:
    body = _resource(
        "Deployment",
        labels={"app": "web"},
        spec={"replicas": 3, "selector": {"matchLabels": {"app": "web"}}, "somethingNew": True},
    )
    assert extract_labels("Deployment", body) == {"app": "web"}


def test_statefulset_decodes_its_own_schema() -> None:
    body = _resource(
        "StatefulSet",
        labels={"app": "db"},
        spec={"serviceName": "db", "replicas": 1, "volumeClaimTemplates": []},
    )
    assert extract_labels("StatefulSet", body) == {"app": "db"}

    with pytest.raises(DecodeFailure):
        extract_labels("StatefulSet", _resource("StatefulSet", spec={"serviceName": 7}))


@pytest.mark.parametrize("kind", ["pod", "POD", "Pod", "pOd"])
def test_kind_matching_is_case_insensitive(kind: str) -> None:
    assert extract_labels(kind, _resource("Pod", labels={"a": "b"})) == {"a": "b"}


@pytest.mark.parametrize("kind", ["ConfigMap", "Secret", "", "pods"])
def test_unsupported_kind_returns_none(kind: str) -> None:
    assert extract_labels(kind, b"definitely not json") is None


@pytest.mark.parametrize("kind", sorted(BUILTIN_KINDS))
@pytest.mark.parametrize(
    "body",
    [
        b"",
        b"not json",
        b"null",
        b"[]",
        b'{"metadata": "oops"}',
        b'{"metadata": {"labels": {"replicas": 3}}}',
        b'{"metadata": {"labels": ["a"]}}',
    ],
)
def test_invalid_body_is_a_decode_failure(kind: str, body: bytes) -> None:
    with pytest.raises(DecodeFailure) as ei:
        extract_labels(kind, body)
    assert ei.value.kind == kind
    assert ei.value.cause is not None


def test_typed_spec_fields_are_not_coerced() -> None:
    with pytest.raises(DecodeFailure):
        extract_labels("Deployment", _resource("Deployment", spec={"replicas": "3"}))
    with pytest.raises(DecodeFailure):
        extract_labels("Pod", _resource("Pod", spec={"containers": {"name": "app"}}))


def test_custom_kind_can_be_registered() -> None:
    registry = default_registry()
    registry.register("CronJob", lambda raw: {"from": "cronjob"})

    assert registry.supports("cronjob")
    assert registry.extract_labels("CRONJOB", b"") == {"from": "cronjob"}


def test_duplicate_kind_is_rejected() -> None:
    registry = KindRegistry()
    registry.register("Pod", lambda raw: {})
    with pytest.raises(PolicyConfigurationError):
        registry.register("pod", lambda raw: {})
    with pytest.raises(PolicyConfigurationError):
        registry.register("  ", lambda raw: {})


def test_get_unknown_kind_raises_key_error() -> None:
    with pytest.raises(KeyError):
        KindRegistry().get("Pod")
