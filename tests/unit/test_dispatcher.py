"""Unit tests for the command dispatch pipeline."""

import json

import pytest
from pydantic import BaseModel

from stream_bouncer.client import EventEmitterClient
from stream_bouncer.protocol.commands import CommandSpec
from stream_bouncer.protocol.errors import APIError
from stream_bouncer.protocol.handler import CommandDispatcher

# =============================================================================
# Helpers
# =============================================================================


class CountArgs(BaseModel):
    count: int
    label: str = "x"


async def ping(ctx):
    return {"pong": True}


def sync_echo(ctx):
    return {"args": ctx.args, "evt": ctx.evt, "nonce": ctx.nonce, "cmd": ctx.cmd}


async def counted(ctx):
    return {"count": ctx.params.count, "label": ctx.params.label}


async def refuse(ctx):
    raise APIError("NOT_ALLOWED", "You shall not pass")


async def explode(ctx):
    raise RuntimeError("kaboom")


def unserializable(ctx):
    return {"value": object()}


COMMANDS = {
    "PING": CommandSpec(handler=ping),
    "ECHO": CommandSpec(handler=sync_echo),
    "COUNT": CommandSpec(handler=counted, schema=CountArgs),
    "REFUSE": CommandSpec(handler=refuse),
    "EXPLODE": CommandSpec(handler=explode),
    "BROKEN": CommandSpec(handler=unserializable),
}


@pytest.fixture
def sent():
    return []


@pytest.fixture
def dispatcher(sent):
    return CommandDispatcher(
        COMMANDS,
        server=object(),
        client=EventEmitterClient(),
        send=sent.append,
    )


def line(**payload) -> str:
    return json.dumps(payload)


# =============================================================================
# Tests: success path
# =============================================================================


class TestSuccess:
    @pytest.mark.anyio
    async def test_ping_response(self, dispatcher, sent):
        """Successful commands emit a response with evt null."""
        envelope = await dispatcher.process('{"nonce":"1","cmd":"PING"}')

        assert sent == [envelope]
        assert envelope.to_line() == '{"cmd":"PING","data":{"pong":true},"evt":null,"nonce":"1"}'

    @pytest.mark.anyio
    async def test_sync_handler_and_context(self, dispatcher):
        """Sync handlers work and receive the full context."""
        envelope = await dispatcher.process(
            line(nonce="n", cmd="ECHO", evt="MESSAGE_CREATE", args={"a": 1})
        )

        assert envelope.data == {
            "args": {"a": 1},
            "evt": "MESSAGE_CREATE",
            "nonce": "n",
            "cmd": "ECHO",
        }

    @pytest.mark.anyio
    async def test_args_default_to_empty_dict(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="n", cmd="ECHO"))

        assert envelope.data["args"] == {}

    @pytest.mark.anyio
    async def test_bytes_input(self, dispatcher):
        envelope = await dispatcher.process(b'{"nonce":"1","cmd":"PING"}')

        assert envelope.data == {"pong": True}

    @pytest.mark.anyio
    async def test_validated_params(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="n", cmd="COUNT", args={"count": 3}))

        assert envelope.evt is None
        assert envelope.data == {"count": 3, "label": "x"}


# =============================================================================
# Tests: error mapping
# =============================================================================


class TestErrors:
    @pytest.mark.anyio
    @pytest.mark.parametrize("raw", ["not json", "{", "", '{"nonce": }'])
    async def test_malformed_json(self, dispatcher, sent, raw):
        envelope = await dispatcher.process(raw)

        assert len(sent) == 1
        assert envelope.cmd == "DISPATCH"
        assert envelope.evt == "ERROR"
        assert envelope.nonce is None
        assert envelope.data == {
            "code": "INVALID_PAYLOAD",
            "message": "Invalid payload, expected json",
        }

    @pytest.mark.anyio
    @pytest.mark.parametrize("raw", ["[1, 2]", "42", '"text"', "null"])
    async def test_non_object_json(self, dispatcher, raw):
        envelope = await dispatcher.process(raw)

        assert envelope.data["code"] == "INVALID_PAYLOAD"
        assert envelope.nonce is None

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "payload",
        [{"cmd": "PING"}, {"cmd": "PING", "nonce": ""}, {"cmd": "PING", "nonce": 5}],
    )
    async def test_missing_nonce(self, dispatcher, payload):
        envelope = await dispatcher.process(json.dumps(payload))

        assert envelope.nonce is None
        assert envelope.cmd == "PING"
        assert envelope.data == {"code": "INVALID_PAYLOAD", "message": "Payload requires a nonce"}

    @pytest.mark.anyio
    async def test_unknown_command(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="7", cmd="FROBNICATE"))

        assert envelope.nonce == "7"
        assert envelope.cmd == "FROBNICATE"
        assert envelope.data == {"code": "INVALID_COMMAND", "message": "FROBNICATE"}

    @pytest.mark.anyio
    async def test_missing_command(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="7"))

        assert envelope.cmd == "DISPATCH"
        assert envelope.data["code"] == "INVALID_COMMAND"

    @pytest.mark.anyio
    async def test_schema_failure(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="8", cmd="COUNT", args={}))

        assert envelope.nonce == "8"
        assert envelope.data["code"] == "INVALID_PAYLOAD"
        assert "count" in envelope.data["message"]

    @pytest.mark.anyio
    async def test_schema_does_not_coerce(self, dispatcher):
        """'3' is not accepted where an int is declared."""
        envelope = await dispatcher.process(line(nonce="8", cmd="COUNT", args={"count": "3"}))

        assert envelope.data["code"] == "INVALID_PAYLOAD"
        assert envelope.data["message"].startswith("count:")

    @pytest.mark.anyio
    async def test_args_must_be_object(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="9", cmd="PING", args=[1]))

        assert envelope.nonce == "9"
        assert envelope.data["code"] == "INVALID_PAYLOAD"

    @pytest.mark.anyio
    async def test_handler_error_code_is_propagated(self, dispatcher):
        envelope = await dispatcher.process(line(nonce="10", cmd="REFUSE"))

        assert envelope.nonce == "10"
        assert envelope.cmd == "REFUSE"
        assert envelope.data == {"code": "NOT_ALLOWED", "message": "You shall not pass"}

    @pytest.mark.anyio
    async def test_unexpected_exception_is_unknown_error(self, dispatcher, sent):
        envelope = await dispatcher.process(line(nonce="11", cmd="EXPLODE"))

        assert len(sent) == 1
        assert envelope.nonce == "11"
        assert envelope.data == {"code": "UNKNOWN_ERROR", "message": "kaboom"}

    @pytest.mark.anyio
    async def test_unserializable_result_becomes_error(self, sent):
        """A result that cannot be written still yields exactly one line."""
        lines = []

        def send(envelope):
            lines.append(envelope.to_line())
            sent.append(envelope)

        dispatcher = CommandDispatcher(
            COMMANDS, server=object(), client=EventEmitterClient(), send=send
        )

        await dispatcher.process(line(nonce="12", cmd="BROKEN"))

        assert len(lines) == 1
        assert json.loads(lines[0])["data"]["code"] == "UNKNOWN_ERROR"
        assert json.loads(lines[0])["nonce"] == "12"
