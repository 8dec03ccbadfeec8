"""stream-bouncer: a JSON-lines bridge to a real-time service client.

The host process writes commands to stdin and reads responses and
subscribed events from stdout. The bridge forwards commands to named
handlers and fans remote events out to matching subscriptions.
"""

from .bridge import Bridge
from .client import EventEmitterClient, RemoteClient
from .config import PROTOCOL_VERSION, BridgeConfig
from .dedup import DedupGate
from .equality import deep_equal
from .filters import matches
from .protocol import APIError, CommandSpec, Envelope, ErrorCode, EventName, EventSpec
from .subscriptions import Subscription, SubscriptionRegistry

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "Bridge",
    "BridgeConfig",
    "CommandSpec",
    "DedupGate",
    "Envelope",
    "ErrorCode",
    "EventEmitterClient",
    "EventName",
    "EventSpec",
    "PROTOCOL_VERSION",
    "RemoteClient",
    "Subscription",
    "SubscriptionRegistry",
    "deep_equal",
    "matches",
]
