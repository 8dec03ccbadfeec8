"""Command Dispatcher - parse, validate and run host commands.

Every raw line from the host goes through the same pipeline:

1. Parse JSON                     -> INVALID_PAYLOAD
2. Require a nonce                -> INVALID_PAYLOAD
3. Resolve the command by name    -> INVALID_COMMAND
4. Validate args (strict schema)  -> INVALID_PAYLOAD
5. Run the handler                -> handler's own code, or UNKNOWN_ERROR

Exactly one envelope is emitted per line: the response on success, an
ERROR event otherwise. Nothing is raised back to the caller.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from .commands import Command, CommandContext, CommandSpec
from .errors import APIError, ErrorCode
from .events import Envelope

if TYPE_CHECKING:
    from ..bridge import Bridge
    from ..client import RemoteClient

logger = logging.getLogger(__name__)

EnvelopeSink = Callable[[Envelope], None]


def format_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "args"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class CommandDispatcher:
    """Runs the command pipeline and emits one envelope per command.

    Usage:
        dispatcher = CommandDispatcher(commands, server=bridge, client=client, send=bridge.send)
        envelope = await dispatcher.process('{"nonce":"1","cmd":"PING"}')

    The command registry is an immutable name -> CommandSpec mapping
    supplied at construction.
    """

    def __init__(
        self,
        commands: Mapping[str, CommandSpec],
        *,
        server: Bridge,
        client: RemoteClient,
        send: EnvelopeSink,
    ) -> None:
        self._commands = commands
        self._server = server
        self._client = client
        self._send = send

    async def process(self, raw: str | bytes) -> Envelope:
        """Run one raw message through the pipeline.

        Returns the envelope that was emitted.
        """
        payload: dict[str, Any] = {}

        try:
            payload = self._parse(raw)
            nonce = self._require_nonce(payload)
            spec = self._resolve(payload)
            command = self._build_command(payload, nonce)
            params = self._validate(spec, command)

            logger.debug(f"Handling command: {command.cmd} (nonce={command.nonce})")
            ctx = CommandContext(
                server=self._server,
                client=self._client,
                cmd=command.cmd,
                nonce=command.nonce,
                evt=command.evt,
                args=command.args or {},
                params=params,
            )
            data = spec.handler(ctx)
            if inspect.isawaitable(data):
                data = await data

            envelope = Envelope.response(command.nonce, command.cmd, data)
            self._send(envelope)
            return envelope

        except Exception as e:
            error = APIError.from_exception(e)
            if error is not e:
                logger.exception(f"Unhandled error in command {payload.get('cmd')!r}: {e}")
            else:
                logger.debug(f"Command failed with {error.code}: {error.message}")

            envelope = Envelope.error(
                nonce=_string_or_none(payload.get("nonce")),
                cmd=_string_or_none(payload.get("cmd")),
                code=error.code,
                message=error.message,
            )
            self._send(envelope)
            return envelope

    def _parse(self, raw: str | bytes) -> dict[str, Any]:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise APIError(ErrorCode.INVALID_PAYLOAD, "Invalid payload, expected json") from e
        if not isinstance(payload, dict):
            raise APIError(ErrorCode.INVALID_PAYLOAD, "Invalid payload, expected json")
        return payload

    def _require_nonce(self, payload: dict[str, Any]) -> str:
        nonce = payload.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            raise APIError(ErrorCode.INVALID_PAYLOAD, "Payload requires a nonce")
        return nonce

    def _resolve(self, payload: dict[str, Any]) -> CommandSpec:
        name = payload.get("cmd")
        spec = self._commands.get(name) if isinstance(name, str) else None
        if spec is None:
            message = name if isinstance(name, str) else json.dumps(name)
            raise APIError(ErrorCode.INVALID_COMMAND, message)
        return spec

    def _build_command(self, payload: dict[str, Any], nonce: str) -> Command:
        try:
            return Command.model_validate({**payload, "nonce": nonce})
        except ValidationError as e:
            raise APIError(ErrorCode.INVALID_PAYLOAD, format_validation_error(e)) from e

    def _validate(self, spec: CommandSpec, command: Command) -> BaseModel | None:
        if spec.schema is None:
            return None
        try:
            return spec.schema.model_validate(command.args or {}, strict=True)
        except ValidationError as e:
            raise APIError(ErrorCode.INVALID_PAYLOAD, format_validation_error(e)) from e


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
