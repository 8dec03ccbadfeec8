"""Subscription registry.

Holds the standing (event, filter args) requests made by the host. A
subscription's identity is its event name plus its structurally-equal
args, so subscribing twice with equal args leaves a single entry.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .equality import deep_equal
from .filters import matches

logger = logging.getLogger(__name__)

DispatchCallback = Callable[[Any], None]
DispatchFactory = Callable[[str], DispatchCallback]


@dataclass(eq=False)
class Subscription:
    """A standing request for events named `evt` matching `args`."""

    dispatch: DispatchCallback
    evt: str
    args: dict[str, Any] = field(default_factory=dict)

    def same_as(self, evt: str, args: Mapping[str, Any] | None) -> bool:
        return self.evt == evt and deep_equal(self.args, _normalize_args(args))

    def accepts(self, evt: str, data: Any) -> bool:
        return self.evt == evt and matches(data, self.args)


def _normalize_args(args: Mapping[str, Any] | None) -> dict[str, Any]:
    return dict(args) if args else {}


class SubscriptionRegistry:
    """Ordered set of active subscriptions.

    The registry builds each subscription's dispatch callback through
    `dispatch_factory(evt)`, so it never writes output itself.
    """

    def __init__(self, dispatch_factory: DispatchFactory) -> None:
        self._dispatch_factory = dispatch_factory
        self._subscriptions: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._subscriptions))

    def add_subscription(self, evt: str, args: Mapping[str, Any] | None = None) -> Subscription:
        """Register (evt, args); a no-op returning the existing entry if present."""
        existing = self.get_subscription(evt, args)
        if existing is not None:
            return existing

        subscription = Subscription(
            dispatch=self._dispatch_factory(evt),
            evt=evt,
            args=copy.deepcopy(_normalize_args(args)),
        )
        self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {evt} with {subscription.args}")
        return subscription

    def remove_subscription(self, evt: str, args: Mapping[str, Any] | None = None) -> bool:
        """Remove the (evt, args) entry. Returns False if there was none."""
        for index, subscription in enumerate(self._subscriptions):
            if subscription.same_as(evt, args):
                del self._subscriptions[index]
                logger.debug(f"Unsubscribed from {evt} with {subscription.args}")
                return True
        return False

    def get_subscription(
        self, evt: str, args: Mapping[str, Any] | None = None
    ) -> Subscription | None:
        """Return the first entry with the same evt and deep-equal args."""
        for subscription in self._subscriptions:
            if subscription.same_as(evt, args):
                return subscription
        return None

    def matching(self, evt: str, data: Any) -> list[Subscription]:
        """All subscriptions that should receive `data` for event `evt`."""
        return [s for s in self._subscriptions if s.accepts(evt, data)]
