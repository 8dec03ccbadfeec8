"""Deduplication gate for remote-service events.

The remote client sometimes reports the same occurrence more than once in
quick succession. The gate remembers when each dedup key was last seen and
suppresses a key that shows up again within the window.

Memory is bounded two ways: keys older than the window are swept on every
call, and the oldest keys are evicted once `max_keys` is reached.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 5.0
DEFAULT_MAX_KEYS = 10_000


class DedupGate:
    """Time-windowed filter over dedup keys.

    Usage:
        gate = DedupGate(window=5.0)
        if gate.should_suppress(key):
            return  # duplicate

    Policy: the last-seen timestamp is refreshed on every sighting, so a
    key repeated faster than the window stays suppressed until it goes
    quiet for a full window.
    """

    def __init__(
        self,
        window: float = DEFAULT_WINDOW,
        max_keys: int = DEFAULT_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window <= 0:
            raise ValueError("window must be positive")
        if max_keys <= 0:
            raise ValueError("max_keys must be positive")
        self.window = window
        self.max_keys = max_keys
        self._clock = clock
        # key -> last seen, ordered oldest first
        self._seen: OrderedDict[Hashable, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._seen

    def should_suppress(self, key: Hashable) -> bool:
        """Record a sighting of `key`; return True if it is a duplicate."""
        now = self._clock()
        self._sweep(now)

        last_seen = self._seen.pop(key, None)
        self._seen[key] = now

        while len(self._seen) > self.max_keys:
            evicted, _ = self._seen.popitem(last=False)
            logger.debug(f"Dedup gate full, evicted key {evicted!r}")

        return last_seen is not None and now - last_seen < self.window

    def _sweep(self, now: float) -> None:
        """Drop keys that have aged out of the window."""
        while self._seen:
            key, last_seen = next(iter(self._seen.items()))
            if now - last_seen < self.window:
                break
            del self._seen[key]
