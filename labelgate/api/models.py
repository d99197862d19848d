from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from labelgate.core.policy_engine.policy_models import Verdict
from labelgate.core.review import ReviewRequest

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_REVIEW_KIND = "AdmissionReview"


class ApiError(BaseModel):
    """Standard API error payload (also used for the ping reply)."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    message: str = Field(alias="Message")


class GroupVersionKindIn(BaseModel):
    group: Optional[str] = None
    version: Optional[str] = None
    kind: str


class AdmissionRequestIn(BaseModel):
    """The request half of an incoming AdmissionReview.

    object is normally the embedded resource JSON. A JSON string, or an
    object of the form {"raw": "<base64>"}, is taken as base64-encoded
    resource bytes; a string that is not base64 is kept as-is and left for
    the decoder of its kind to accept or reject.
    """

    model_config = ConfigDict(populate_by_name=True)

    uid: Optional[str] = None
    kind: GroupVersionKindIn
    name: Optional[str] = None
    namespace: Optional[str] = None
    operation: Optional[str] = None
    raw_object: bytes = Field(default=b"", alias="object")

    @field_validator("raw_object", mode="before")
    @classmethod
    def _raw_bytes(cls, value: Any) -> bytes:
        if value is None:
            return b""
        if isinstance(value, dict) and set(value) == {"raw"} and isinstance(value["raw"], str):
            value = value["raw"]
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                return value.encode("utf-8")
        return json.dumps(value, separators=(",", ":")).encode("utf-8")

    def to_review_request(self) -> ReviewRequest:
        return ReviewRequest(
            kind=self.kind.kind,
            name=self.name or "",
            raw_object=self.raw_object,
            uid=self.uid or "",
            namespace=self.namespace or "",
        )


class AdmissionReviewIn(BaseModel):
    """Incoming AdmissionReview envelope."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = None
    request: AdmissionRequestIn


class StatusOut(BaseModel):
    message: Optional[str] = None


class AdmissionResponseOut(BaseModel):
    """Verdict as sent back to the control plane.

    The reason is written to both status (the key the API server reads) and
    result; both are omitted when the reason is empty.
    """

    uid: str = ""
    allowed: bool
    status: Optional[StatusOut] = None
    result: Optional[StatusOut] = None

    @classmethod
    def from_verdict(cls, verdict: Verdict, *, uid: str = "") -> "AdmissionResponseOut":
        message = StatusOut(message=verdict.reason) if verdict.reason else None
        return cls(uid=uid, allowed=verdict.allowed, status=message, result=message)


class AdmissionReviewOut(BaseModel):
    """Outgoing AdmissionReview envelope. The request is never echoed back."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default=ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = ADMISSION_REVIEW_KIND
    response: AdmissionResponseOut

    @classmethod
    def from_verdict(
        cls, verdict: Verdict, *, uid: str = "", api_version: Optional[str] = None
    ) -> "AdmissionReviewOut":
        return cls(
            api_version=api_version or ADMISSION_API_VERSION,
            response=AdmissionResponseOut.from_verdict(verdict, uid=uid),
        )

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
