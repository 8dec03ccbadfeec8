"""Filter matching for subscriptions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .equality import deep_equal


def matches(payload: Any, filter_args: Mapping[str, Any] | None) -> bool:
    """Check whether an event payload satisfies a subscription filter.

    Every key in `filter_args` must be present in `payload` with a
    deep-equal value. An empty filter matches everything. A filter value of
    None is a constraint like any other: the payload must carry the key with
    a None value.
    """
    if not filter_args:
        return True
    if not isinstance(payload, Mapping):
        return False
    for key, expected in filter_args.items():
        if key not in payload:
            return False
        if not deep_equal(payload[key], expected):
            return False
    return True
