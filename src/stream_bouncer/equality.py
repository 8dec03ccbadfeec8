"""Structural equality for subscription arguments.

Two argument sets describe the same subscription when they are equal
value-by-value, regardless of dict key order or object identity.

Rules:
- Mappings are equal when they have the same key set and equal values.
  A missing key and a key set to None are different.
- Lists and tuples are equal when they have the same length and are
  equal element-wise, in order.
- Booleans only equal booleans (True is not 1).
- Everything else falls back to ==.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SEQUENCE_TYPES = (list, tuple)


def deep_equal(left: Any, right: Any) -> bool:
    """Compare two JSON-like values structurally."""
    if left is right:
        return True

    if isinstance(left, Mapping) or isinstance(right, Mapping):
        if not (isinstance(left, Mapping) and isinstance(right, Mapping)):
            return False
        if left.keys() != right.keys():
            return False
        return all(deep_equal(left[key], right[key]) for key in left)

    if isinstance(left, _SEQUENCE_TYPES) or isinstance(right, _SEQUENCE_TYPES):
        if not (isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES)):
            return False
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right

    return bool(left == right)
