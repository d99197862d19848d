from typing import Dict, Optional

from .loader import BUILTIN_KINDS, default_registry, load_builtin_kinds, schema_decoder
from .registry import KindRegistry, LabelDecoder, normalize_kind


def extract_labels(
    kind: str, raw_object: bytes, registry: Optional[KindRegistry] = None
) -> Optional[Dict[str, str]]:
    """Extract labels from a raw resource body using the built-in kinds."""
    return (registry or default_registry()).extract_labels(kind, raw_object)


__all__ = [
    "BUILTIN_KINDS",
    "KindRegistry",
    "LabelDecoder",
    "default_registry",
    "extract_labels",
    "load_builtin_kinds",
    "normalize_kind",
    "schema_decoder",
]
