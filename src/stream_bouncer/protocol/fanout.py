"""Event fan-out from the remote client to subscribers.

For each remote occurrence the registered event handler normalizes the
payload, the dedup gate gets a chance to drop it, and the result is
delivered to every subscription whose filter matches.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from typing import TYPE_CHECKING, Any

from ..dedup import DedupGate
from ..subscriptions import SubscriptionRegistry
from .errors import ConfigurationError
from .events import Envelope, EventContext, EventSpec

if TYPE_CHECKING:
    from ..bridge import Bridge
    from ..client import RemoteClient

logger = logging.getLogger(__name__)


class EventFanout:
    """Normalizes remote events and delivers them to matching subscriptions.

    Delivery is synchronous and follows registry order.
    """

    def __init__(
        self,
        events: Mapping[str, EventSpec],
        *,
        server: Bridge,
        client: RemoteClient,
        subscriptions: SubscriptionRegistry,
        dedup: DedupGate,
    ) -> None:
        self._events = events
        self._server = server
        self._client = client
        self._subscriptions = subscriptions
        self._dedup = dedup

    def has_handler(self, evt: str) -> bool:
        return evt in self._events

    def publish(self, evt: str, raw: Any) -> int:
        """Handle one remote occurrence of `evt`.

        Returns the number of subscriptions the data was delivered to.
        """
        spec = self._events.get(evt)
        if spec is None:
            raise ConfigurationError(f"No event handler registered for {evt}")

        data = spec.handler(EventContext(server=self._server, client=self._client, args=raw))
        dedup_key = spec.dedup_key(data) if spec.dedup_key else None
        return self.dispatch_to_subscriptions(evt, data, dedup_key)

    def dispatch_to_subscriptions(
        self, evt: str, data: Any, dedup_key: Hashable | None = None
    ) -> int:
        """Deliver already-normalized data, honoring the dedup gate."""
        if dedup_key is not None and self._dedup.should_suppress(dedup_key):
            logger.debug(f"Suppressed duplicate {evt} ({dedup_key!r})")
            return 0

        subscribers = self._subscriptions.matching(evt, data)
        if subscribers:
            # Fail before the first delivery, not halfway through
            Envelope.dispatch(evt, data).to_line()

        for subscription in subscribers:
            subscription.dispatch(data)

        logger.debug(f"Fanned out {evt} to {len(subscribers)} subscription(s)")
        return len(subscribers)
