from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from labelgate.core.policy_engine.policy_exceptions import PolicyConfigurationError

LabelDecoder = Callable[[bytes], Dict[str, str]]


def normalize_kind(kind: str) -> str:
    return (kind or "").strip().lower()


@dataclass
class KindRegistry:
    """In-memory registry of resource kinds the webhook knows how to decode.

    Kinds are matched case-insensitively. A kind without a registered
    decoder is unsupported and is let through by the reviewer.

    - register: O(1) average
    - get: O(1) average
    - kinds: O(n) for n registered kinds
    """

    _decoders: Dict[str, LabelDecoder] = field(default_factory=dict, init=False, repr=False)

    def register(self, kind: str, decoder: LabelDecoder) -> None:
        """Register a decoder for a kind."""
        key = normalize_kind(kind)
        if not key:
            raise PolicyConfigurationError("kind must be a non-empty string")
        if key in self._decoders:
            raise PolicyConfigurationError(f"Duplicate kind: {kind}")
        self._decoders[key] = decoder

    def get(self, kind: str) -> LabelDecoder:
        """Retrieve a decoder by kind."""
        return self._decoders[normalize_kind(kind)]

    def try_get(self, kind: str) -> Optional[LabelDecoder]:
        """Retrieve a decoder or None."""
        return self._decoders.get(normalize_kind(kind))

    def supports(self, kind: str) -> bool:
        return normalize_kind(kind) in self._decoders

    def kinds(self) -> List[str]:
        """List registered kinds in insertion order."""
        return list(self._decoders.keys())

    def extract_labels(self, kind: str, raw_object: bytes) -> Optional[Dict[str, str]]:
        """Decode raw_object as kind and return its labels.

        Returns None when the kind is not registered. Raises DecodeFailure
        when the kind is registered but the body does not match its schema.
        """

        decoder = self.try_get(kind)
        if decoder is None:
            return None
        return decoder(raw_object)
