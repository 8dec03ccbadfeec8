"""Command definitions for the protocol layer.

Commands are requests from the host that expect exactly one response.
Each command carries a nonce that is echoed on its response envelope.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..bridge import Bridge
    from ..client import RemoteClient


class CommandName(str, Enum):
    """Built-in command names."""

    # Reserved for unsolicited envelopes (events and errors)
    DISPATCH = "DISPATCH"

    PING = "PING"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    GET_GUILDS = "GET_GUILDS"
    GET_GUILD = "GET_GUILD"


class Command(BaseModel):
    """A command from host to bridge.

    Example:
        {
            "nonce": "7f3c",
            "cmd": "SUBSCRIBE",
            "evt": "MESSAGE_CREATE",
            "args": {"guild_id": "42"}
        }
    """

    nonce: str
    cmd: str
    evt: str | None = None
    args: dict[str, Any] | None = Field(default=None)

    @classmethod
    def create(
        cls,
        cmd: str | CommandName,
        nonce: str,
        args: dict[str, Any] | None = None,
        evt: str | None = None,
    ) -> Command:
        """Factory method for creating commands."""
        return cls(
            nonce=nonce,
            cmd=cmd.value if isinstance(cmd, CommandName) else cmd,
            evt=evt,
            args=args,
        )


@dataclass
class CommandContext:
    """Everything a command handler gets to work with."""

    server: Bridge
    client: RemoteClient
    cmd: str
    nonce: str
    evt: str | None = None
    args: dict[str, Any] = field(default_factory=dict)
    params: BaseModel | None = None


CommandCallable = Callable[[CommandContext], Awaitable[Any] | Any]


@dataclass(frozen=True)
class CommandSpec:
    """Registry entry for a command.

    Attributes:
        handler: Sync or async callable producing the response data.
        schema: Optional pydantic model the args must satisfy strictly.
    """

    handler: CommandCallable
    schema: type[BaseModel] | None = None
