"""
Request Key Generation

Implements:
- canonical_json(value) -> stable serialization (sorted keys, no whitespace)
- make_request_key(operation_id, variables) -> deterministic key
- Deeply equal variables map to the same key, whatever their identity or
  insertion order; any difference in value maps to a different key
"""

import hashlib
import json
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


def _encode_default(value: Any) -> Any:
    # sets have no stable iteration order
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=canonical_json)
    return str(value)


def canonical_json(value: Any) -> str:
    """Serialize ``value`` so that deeply equal structures produce identical text."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_encode_default,
    )


def make_request_key(operation_id: str, variables: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build the cache key for an (operation, variables) pair.

    Design:
        key = canonical_json([operation_id, variables])
        - Same operation + deep-equal variables = identical key = shared entry
        - Missing variables are treated as an empty mapping
    """
    return canonical_json([operation_id, dict(variables or {})])


class RequestKeyGenerator:
    """
    Generate request keys for a scope.

    With ``hashed=True`` the canonical form is reduced to a SHA256 hex digest,
    which keeps keys short when variables carry large payloads.
    """

    def __init__(self, hashed: bool = False):
        self.hashed = hashed
        self.generated = 0

    def generate(self, operation_id: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        key = make_request_key(operation_id, variables)
        if self.hashed:
            key = hashlib.sha256(key.encode("utf-8")).hexdigest()
        self.generated += 1
        logger.debug(f"Generated key: {key} (operation={operation_id})")
        return key

    __call__ = generate
