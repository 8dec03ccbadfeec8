"""Remote client interface.

The bridge only needs one thing from the real-time client: a way to
register callbacks for named events. Connection handling, auth and rate
limiting stay inside the client.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .config import BridgeConfig

logger = logging.getLogger(__name__)

EventCallback = Callable[..., Any]


@runtime_checkable
class RemoteClient(Protocol):
    """Anything exposing `on(event_name, callback)`."""

    def on(self, event_name: str, callback: EventCallback) -> Any: ...


class EventEmitterClient:
    """Minimal in-process client.

    Used when no real client is configured and as a test double. Command
    handlers read cached state from `guilds` (id -> guild payload).
    """

    def __init__(self, guilds: dict[str, Any] | None = None) -> None:
        self.guilds: dict[str, Any] = dict(guilds or {})
        self._listeners: dict[str, list[EventCallback]] = {}

    def on(self, event_name: str, callback: EventCallback) -> None:
        self._listeners.setdefault(event_name, []).append(callback)

    def off(self, event_name: str, callback: EventCallback) -> None:
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    def emit(self, event_name: str, *args: Any) -> int:
        """Invoke listeners synchronously. Returns how many were called."""
        listeners = list(self._listeners.get(event_name, []))
        for callback in listeners:
            callback(*args)
        return len(listeners)


ClientFactory = Callable[["BridgeConfig"], RemoteClient]


def load_client_factory(path: str) -> ClientFactory:
    """Import a client factory from a `module:attribute` path.

    The factory is called with the BridgeConfig and must return an object
    satisfying RemoteClient.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Client factory must look like 'module:attribute', got {path!r}")

    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError as e:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from e

    if not callable(factory):
        raise ValueError(f"Client factory {path!r} is not callable")
    logger.info(f"Loaded client factory {path}")
    return factory


def default_client_factory(config: BridgeConfig) -> RemoteClient:
    """Build an idle EventEmitterClient."""
    return EventEmitterClient()
