from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceModel(BaseModel):
    """Base for resource schemas.

    Unknown fields are ignored; known fields are type-checked strictly, so
    a label value that is not a string fails validation instead of being
    coerced.
    """

    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)


class ObjectMeta(ResourceModel):
    name: Optional[str] = None
    generate_name: Optional[str] = Field(default=None, alias="generateName")
    namespace: Optional[str] = None
    uid: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None


class Resource(ResourceModel):
    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = None
    metadata: Optional[ObjectMeta] = None

    @property
    def labels(self) -> Dict[str, str]:
        if self.metadata is None or self.metadata.labels is None:
            return {}
        return dict(self.metadata.labels)


class PodSpec(ResourceModel):
    containers: Optional[List[Dict[str, Any]]] = None
    init_containers: Optional[List[Dict[str, Any]]] = Field(default=None, alias="initContainers")
    node_selector: Optional[Dict[str, str]] = Field(default=None, alias="nodeSelector")
    service_account_name: Optional[str] = Field(default=None, alias="serviceAccountName")


class Pod(Resource):
    spec: Optional[PodSpec] = None


class DeploymentSpec(ResourceModel):
    replicas: Optional[int] = None
    selector: Optional[Dict[str, Any]] = None
    template: Optional[Dict[str, Any]] = None
    strategy: Optional[Dict[str, Any]] = None
    paused: Optional[bool] = None


class Deployment(Resource):
    spec: Optional[DeploymentSpec] = None


class ReplicaSetSpec(ResourceModel):
    replicas: Optional[int] = None
    min_ready_seconds: Optional[int] = Field(default=None, alias="minReadySeconds")
    selector: Optional[Dict[str, Any]] = None
    template: Optional[Dict[str, Any]] = None


class ReplicaSet(Resource):
    spec: Optional[ReplicaSetSpec] = None


class StatefulSetSpec(ResourceModel):
    replicas: Optional[int] = None
    selector: Optional[Dict[str, Any]] = None
    template: Optional[Dict[str, Any]] = None
    service_name: Optional[str] = Field(default=None, alias="serviceName")
    pod_management_policy: Optional[str] = Field(default=None, alias="podManagementPolicy")
    volume_claim_templates: Optional[List[Dict[str, Any]]] = Field(
        default=None, alias="volumeClaimTemplates"
    )


class StatefulSet(Resource):
    spec: Optional[StatefulSetSpec] = None


class ServiceSpec(ResourceModel):
    type: Optional[str] = None
    ports: Optional[List[Dict[str, Any]]] = None
    selector: Optional[Dict[str, str]] = None
    cluster_ip: Optional[str] = Field(default=None, alias="clusterIP")


class Service(Resource):
    spec: Optional[ServiceSpec] = None


class DaemonSetSpec(ResourceModel):
    selector: Optional[Dict[str, Any]] = None
    template: Optional[Dict[str, Any]] = None
    update_strategy: Optional[Dict[str, Any]] = Field(default=None, alias="updateStrategy")
    min_ready_seconds: Optional[int] = Field(default=None, alias="minReadySeconds")


class DaemonSet(Resource):
    spec: Optional[DaemonSetSpec] = None
