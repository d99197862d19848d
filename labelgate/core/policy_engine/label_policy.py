from __future__ import annotations

from typing import Mapping

from .policy_models import Verdict
from .policy_store import PolicyStore


def evaluate(labels: Mapping[str, str], policy: PolicyStore) -> Verdict:
    """Evaluate resource labels against the whitelist.

    Whitelist semantics: a single (key, value) pair present in both the
    labels and the policy is enough to admit. Comparison is exact and
    case-sensitive on key and value. Empty labels never match.
    """

    for key, value in labels.items():
        required = policy.get(key)
        if required is not None and required == value:
            return Verdict(allowed=True, reason="", matched_label=(key, value))

    return Verdict.denied()
