"""Event definitions for the protocol layer.

Every line the bridge writes is an Envelope. Command responses carry
the originating nonce and a null `evt`; events and errors are sent with
`cmd = DISPATCH` and the event name in `evt`.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from .commands import CommandName

if TYPE_CHECKING:
    from ..bridge import Bridge
    from ..client import RemoteClient


class EventName(str, Enum):
    """All event names in the protocol."""

    # Reserved
    READY = "READY"
    ERROR = "ERROR"

    # Remote service events (subscribable)
    GUILD_CREATE = "GUILD_CREATE"
    MESSAGE_CREATE = "MESSAGE_CREATE"
    MESSAGE_UPDATE = "MESSAGE_UPDATE"
    MESSAGE_DELETE = "MESSAGE_DELETE"


RESERVED_EVENTS = frozenset({EventName.READY.value, EventName.ERROR.value})


class Envelope(BaseModel):
    """The single wire shape for responses, events and errors.

    Field order is part of the wire format:
        {"cmd":"PING","data":{"pong":true},"evt":null,"nonce":"1"}
    """

    cmd: str | None
    data: Any = None
    evt: str | None = None
    nonce: str | None = None

    def to_line(self) -> str:
        """Serialize as one compact JSON line (no trailing newline)."""
        return self.model_dump_json()

    def is_error(self) -> bool:
        return self.evt == EventName.ERROR.value

    @classmethod
    def response(cls, nonce: str | None, cmd: str, data: Any) -> Envelope:
        """Create the response to a command."""
        return cls(cmd=cmd, data=data, evt=None, nonce=nonce)

    @classmethod
    def dispatch(cls, evt: str | EventName, data: Any) -> Envelope:
        """Create an unsolicited event envelope."""
        return cls(
            cmd=CommandName.DISPATCH.value,
            data=data,
            evt=evt.value if isinstance(evt, EventName) else evt,
            nonce=None,
        )

    @classmethod
    def error(
        cls,
        nonce: str | None,
        cmd: str | None,
        code: str,
        message: str,
    ) -> Envelope:
        """Create an ERROR event envelope."""
        return cls(
            cmd=cmd or CommandName.DISPATCH.value,
            data={"code": code, "message": message},
            evt=EventName.ERROR.value,
            nonce=nonce,
        )


@dataclass
class EventContext:
    """Input to an event handler: the raw payload from the remote client."""

    server: Bridge
    client: RemoteClient
    args: Any


@dataclass(frozen=True)
class EventSpec:
    """Registry entry for a remote-service event.

    Attributes:
        handler: Normalizes the raw client payload into wire data.
        dedup_key: Optional function deriving a dedup key from the data.
    """

    handler: Callable[[EventContext], Any]
    dedup_key: Callable[[Any], Hashable | None] | None = None
