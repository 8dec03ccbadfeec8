"""Event handlers: normalize remote client payloads into wire data.

Payloads may be plain mappings (as decoded from the gateway) or objects
exposing the same names as attributes. Snowflake ids are always emitted
as strings so host-side filters compare predictably.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from datetime import datetime
from typing import Any

from ..protocol.events import EventContext, EventName, EventSpec

_MISSING = object()


def read_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read `name` from a mapping key or an attribute."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _snowflake(value: Any) -> str | None:
    return None if value is None else str(value)


def _related_id(obj: Any, name: str) -> str | None:
    """`<name>_id` if present, else the id of the nested `<name>` object."""
    value = read_field(obj, f"{name}_id", _MISSING)
    if value is _MISSING:
        value = read_field(read_field(obj, name), "id")
    return _snowflake(value)


def _timestamp(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def normalize_user(user: Any) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": _snowflake(read_field(user, "id")),
        "username": read_field(user, "username"),
        "discriminator": read_field(user, "discriminator"),
        "avatar": read_field(user, "avatar"),
        "bot": bool(read_field(user, "bot", False)),
    }


def normalize_guild(guild: Any) -> dict[str, Any]:
    return {
        "id": _snowflake(read_field(guild, "id")),
        "name": read_field(guild, "name"),
        "icon": read_field(guild, "icon"),
        "owner_id": _related_id(guild, "owner"),
        "member_count": read_field(guild, "member_count"),
    }


def normalize_message(message: Any) -> dict[str, Any]:
    return {
        "id": _snowflake(read_field(message, "id")),
        "channel_id": _related_id(message, "channel"),
        "guild_id": _related_id(message, "guild"),
        "author": normalize_user(read_field(message, "author")),
        "content": read_field(message, "content"),
        "timestamp": _timestamp(read_field(message, "timestamp")),
        "edited_timestamp": _timestamp(read_field(message, "edited_timestamp")),
        "pinned": bool(read_field(message, "pinned", False)),
        "tts": bool(read_field(message, "tts", False)),
    }


def guild_create(ctx: EventContext) -> dict[str, Any]:
    return normalize_guild(ctx.args)


def message_create(ctx: EventContext) -> dict[str, Any]:
    return normalize_message(ctx.args)


def message_update(ctx: EventContext) -> dict[str, Any]:
    return normalize_message(ctx.args)


def message_delete(ctx: EventContext) -> dict[str, Any]:
    return {
        "id": _snowflake(read_field(ctx.args, "id")),
        "channel_id": _related_id(ctx.args, "channel"),
        "guild_id": _related_id(ctx.args, "guild"),
    }


def message_update_key(data: dict[str, Any]) -> Hashable | None:
    # The same edit is frequently reported twice (content, then embeds)
    if data.get("id") is None:
        return None
    return (EventName.MESSAGE_UPDATE.value, data["id"], data.get("edited_timestamp"), data.get("content"))


def message_delete_key(data: dict[str, Any]) -> Hashable | None:
    if data.get("id") is None:
        return None
    return (EventName.MESSAGE_DELETE.value, data["id"])


EVENT_HANDLERS: dict[str, EventSpec] = {
    EventName.GUILD_CREATE.value: EventSpec(handler=guild_create),
    EventName.MESSAGE_CREATE.value: EventSpec(handler=message_create),
    EventName.MESSAGE_UPDATE.value: EventSpec(handler=message_update, dedup_key=message_update_key),
    EventName.MESSAGE_DELETE.value: EventSpec(handler=message_delete, dedup_key=message_delete_key),
}
