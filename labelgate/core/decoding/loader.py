from __future__ import annotations

from typing import Dict, Type

from pydantic import ValidationError

from labelgate.core.policy_engine.policy_exceptions import DecodeFailure

from .registry import KindRegistry, LabelDecoder
from .schemas import DaemonSet, Deployment, Pod, ReplicaSet, Resource, Service, StatefulSet

BUILTIN_KINDS: Dict[str, Type[Resource]] = {
    "Pod": Pod,
    "Deployment": Deployment,
    "ReplicaSet": ReplicaSet,
    "StatefulSet": StatefulSet,
    "Service": Service,
    "DaemonSet": DaemonSet,
}


def schema_decoder(kind: str, model: Type[Resource]) -> LabelDecoder:
    """Build a decoder that validates a JSON body against model."""

    def decode(raw_object: bytes) -> Dict[str, str]:
        try:
            resource = model.model_validate_json(raw_object or b"")
        except ValidationError as e:
            raise DecodeFailure(kind, e) from e
        return resource.labels

    decode.__name__ = f"decode_{kind.lower()}"
    return decode


def load_builtin_kinds(registry: KindRegistry) -> None:
    """Register decoders for the built-in workload and service kinds."""

    for kind, model in BUILTIN_KINDS.items():
        registry.register(kind, schema_decoder(kind, model))


def default_registry() -> KindRegistry:
    registry = KindRegistry()
    load_builtin_kinds(registry)
    return registry
