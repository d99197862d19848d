from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from .policy_exceptions import PolicyConfigurationError

MATCH_LABELS_KEY = "match-labels"

log = logging.getLogger("labelgate.policy")


def _freeze_labels(value: Optional[Mapping[str, str]]) -> MappingProxyType:
    if value is None:
        return MappingProxyType({})

    if not isinstance(value, Mapping):
        raise PolicyConfigurationError(f"{MATCH_LABELS_KEY} must be a mapping")

    copied: Dict[str, str] = dict(value)

    for k, v in copied.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise PolicyConfigurationError(
                f"{MATCH_LABELS_KEY} keys and values must be strings"
            )

    return MappingProxyType(copied)


@dataclass(frozen=True)
class PolicyStore:
    """Whitelist of label key/value pairs an admitted resource may carry.

    Loaded once at startup and shared read-only by every concurrent review.
    match_labels is an immutable mappingproxy; construction copies the
    incoming mapping so later changes by the caller are not observed.

    Supported schema (JSON)

    {
      "match-labels": {
        "team": "payments",
        "env": "prod"
      }
    }
    """

    match_labels: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    source: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "match_labels", _freeze_labels(self.match_labels))

    def get(self, key: str) -> Optional[str]:
        return self.match_labels.get(key)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self.match_labels.items())

    def __len__(self) -> int:
        return len(self.match_labels)

    def __contains__(self, key: object) -> bool:
        return key in self.match_labels

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: Optional[str] = None) -> "PolicyStore":
        """Build a store from a parsed configuration object.

        Unknown keys are ignored. A missing match-labels key yields an empty
        store, which denies every evaluated resource.
        """

        if not isinstance(data, Mapping):
            raise PolicyConfigurationError("configuration must be a JSON object")

        labels = data.get(MATCH_LABELS_KEY)
        if labels is None:
            log.warning(
                "configuration has no %s; every supported resource will be rejected",
                MATCH_LABELS_KEY,
                extra={"source": source},
            )
        return cls(match_labels=labels, source=source)


def _parse_json(text: str) -> Dict[str, Any]:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise PolicyConfigurationError(f"malformed configuration JSON: {e}") from e
    if not isinstance(obj, dict):
        raise PolicyConfigurationError("configuration must be a JSON object")
    return obj


def load_policy_store(path: str) -> PolicyStore:
    """Load the label whitelist from a JSON configuration file.

    Raises PolicyConfigurationError when the file cannot be read or parsed;
    callers treat this as fatal at startup.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyConfigurationError(f"failed to load config file {path}: {e}") from e

    store = PolicyStore.from_dict(_parse_json(text), source=str(p))
    log.info(
        "loaded policy with %d match label(s) from %s",
        len(store),
        p,
        extra={"source": str(p), "match_labels": dict(store.match_labels)},
    )
    return store
