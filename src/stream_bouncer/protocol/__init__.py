"""Wire protocol for the bridge.

Key concepts:
- Commands: host -> bridge requests, correlated by nonce
- Envelopes: every line written back, {cmd, data, evt, nonce}
- Events: unsolicited envelopes with cmd=DISPATCH and a nonce of null
"""

from .commands import Command, CommandContext, CommandName, CommandSpec
from .errors import APIError, ConfigurationError, ErrorCode
from .events import Envelope, EventContext, EventName, EventSpec
from .fanout import EventFanout
from .handler import CommandDispatcher

__all__ = [
    "APIError",
    "Command",
    "CommandContext",
    "CommandDispatcher",
    "CommandName",
    "CommandSpec",
    "ConfigurationError",
    "Envelope",
    "ErrorCode",
    "EventContext",
    "EventFanout",
    "EventName",
    "EventSpec",
]
