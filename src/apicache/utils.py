"""Pure helpers over mapping/sequence/scalar structures."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

_SEQUENCE_TYPES = (list, tuple)
_NUMBER_TYPES = (bool, int, float)


def deep_equal(left: Any, right: Any) -> bool:
    """Structural equality that agrees with request key serialization."""
    if left is right:
        return True

    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(deep_equal(left[key], right[key]) for key in left)

    if isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES):
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        return False

    if isinstance(left, _NUMBER_TYPES) or isinstance(right, _NUMBER_TYPES):
        # 1, 1.0 and True serialize differently
        return type(left) is type(right) and left == right

    return left == right


def deep_merge(base: Optional[Mapping[str, Any]], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge ``override`` into ``base`` without mutating either.

    Mappings merge key-by-key recursively; every other value kind,
    sequences included, is replaced wholly by the override.
    """
    merged: Dict[str, Any] = dict(base or {})
    for key, value in (override or {}).items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def freeze_copy(value: Any) -> Any:
    """Copy nested mappings and sequences so later caller mutation cannot leak in."""
    if isinstance(value, Mapping):
        return {key: freeze_copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [freeze_copy(item) for item in value]
    if isinstance(value, tuple):
        return tuple(freeze_copy(item) for item in value)
    return value


class ValueRef(Generic[T]):
    """Mutable cell holding the most recent value, read fresh by its owner."""

    __slots__ = ("current",)

    def __init__(self, value: T):
        self.current = value

    def __repr__(self) -> str:
        return f"ValueRef({self.current!r})"
