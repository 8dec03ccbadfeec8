"""Default command and event registries.

Both are exposed as read-only mappings; pass your own mappings to Bridge
to extend or replace them.
"""

from types import MappingProxyType

from ..protocol.events import EventName
from .commands import COMMAND_HANDLERS
from .events import EVENT_HANDLERS

DEFAULT_COMMANDS = MappingProxyType(COMMAND_HANDLERS)
DEFAULT_EVENTS = MappingProxyType(EVENT_HANDLERS)

# remote client event name -> bridge event name
DEFAULT_EVENT_BINDINGS = MappingProxyType(
    {
        "guild_create": EventName.GUILD_CREATE.value,
        "message": EventName.MESSAGE_CREATE.value,
        "message_update": EventName.MESSAGE_UPDATE.value,
        "message_delete": EventName.MESSAGE_DELETE.value,
    }
)

__all__ = [
    "DEFAULT_COMMANDS",
    "DEFAULT_EVENTS",
    "DEFAULT_EVENT_BINDINGS",
]
