"""Built-in command handlers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from ..protocol.commands import CommandContext, CommandName, CommandSpec
from ..protocol.errors import APIError, ErrorCode
from ..protocol.events import RESERVED_EVENTS
from .events import normalize_guild, read_field


class GuildArgs(BaseModel):
    """Args for GET_GUILD."""

    guild_id: str


def _subscribable_event(ctx: CommandContext) -> str:
    evt = ctx.evt
    if not evt or evt in RESERVED_EVENTS or not ctx.server.has_event(evt):
        raise APIError(ErrorCode.INVALID_EVENT, str(evt))
    return evt


async def ping(ctx: CommandContext) -> dict[str, Any]:
    return {"pong": True}


async def subscribe(ctx: CommandContext) -> dict[str, Any]:
    """Start forwarding `evt` events whose data matches `args`."""
    evt = _subscribable_event(ctx)
    ctx.server.add_subscription(evt, ctx.args)
    return {"evt": evt}


async def unsubscribe(ctx: CommandContext) -> dict[str, Any]:
    evt = _subscribable_event(ctx)
    ctx.server.remove_subscription(evt, ctx.args)
    return {"evt": evt}


def _guild_cache(ctx: CommandContext) -> dict[str, Any]:
    guilds = read_field(ctx.client, "guilds") or {}
    # Some clients keep guilds in a collection object rather than a dict
    return {str(k): v for k, v in guilds.items()} if hasattr(guilds, "items") else {}


async def get_guilds(ctx: CommandContext) -> dict[str, Any]:
    guilds = [normalize_guild(g) for g in _guild_cache(ctx).values()]
    return {"guilds": [{"id": g["id"], "name": g["name"]} for g in guilds]}


async def get_guild(ctx: CommandContext) -> dict[str, Any]:
    guild_id = ctx.params.guild_id  # type: ignore[union-attr]

    guild = _guild_cache(ctx).get(guild_id)
    if guild is None:
        raise APIError(ErrorCode.INVALID_GUILD, f"Invalid guild id: {guild_id}")
    return normalize_guild(guild)


COMMAND_HANDLERS: dict[str, CommandSpec] = {
    CommandName.PING.value: CommandSpec(handler=ping),
    CommandName.SUBSCRIBE.value: CommandSpec(handler=subscribe),
    CommandName.UNSUBSCRIBE.value: CommandSpec(handler=unsubscribe),
    CommandName.GET_GUILDS.value: CommandSpec(handler=get_guilds),
    CommandName.GET_GUILD.value: CommandSpec(handler=get_guild, schema=GuildArgs),
}
