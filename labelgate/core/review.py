from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from labelgate.core.decoding import KindRegistry, default_registry
from labelgate.core.policy_engine.label_policy import evaluate
from labelgate.core.policy_engine.policy_exceptions import DecodeFailure, ReviewFailure
from labelgate.core.policy_engine.policy_models import Verdict
from labelgate.core.policy_engine.policy_store import PolicyStore


@dataclass(frozen=True)
class ReviewRequest:
    """The part of an admission review the decision depends on.

    kind and raw_object drive the decision; uid, name and namespace are
    carried for logging and for echoing the uid back to the caller.
    """

    kind: str
    name: str = ""
    raw_object: bytes = b""
    uid: str = ""
    namespace: str = ""


class AdmissionReviewer:
    """
    Admission decision point.

    Invariants
    - Unsupported kinds are always admitted with reason "Passthrough"
    - A malformed body for a supported kind raises ReviewFailure, never a deny
    - No state is kept between reviews; the policy is read-only
    """

    def __init__(
        self,
        policy: PolicyStore,
        *,
        registry: Optional[KindRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.policy = policy
        self.registry = registry if registry is not None else default_registry()
        self.log = logger if logger is not None else logging.getLogger("labelgate.review")

    def review(self, request: ReviewRequest) -> Verdict:
        self.log.debug(
            "reviewing admission for kind:%s | name:%s", request.kind, request.name
        )

        try:
            labels = self.registry.extract_labels(request.kind, request.raw_object)
        except DecodeFailure as e:
            self.log.error("failed deserialization of %s %r: %s", request.kind, request.name, e)
            raise ReviewFailure(str(e)) from e

        if labels is None:
            self.log.info(
                "unsupported kind %s, refusing to enforce",
                request.kind,
                extra={"kind": request.kind, "resource_name": request.name},
            )
            return Verdict.passthrough()

        self.log.debug("got labels: %s", labels)
        return evaluate(labels, self.policy)


def review(
    request: ReviewRequest,
    policy: PolicyStore,
    *,
    registry: Optional[KindRegistry] = None,
    logger: Optional[logging.Logger] = None,
) -> Verdict:
    """Review a single request with a throwaway AdmissionReviewer."""
    return AdmissionReviewer(policy, registry=registry, logger=logger).review(request)
