"""Integration tests for the stdio adapter.

Tests the adapter with a real Bridge, verifying:
- READY handshake before anything else
- JSON line parsing from stdin
- Envelope serialization to stdout
- UTF-8 encoding and newline handling
- Loop-level failures surfacing as ERROR envelopes
"""

import asyncio
import io
import json

import pytest

from stream_bouncer import Bridge, BridgeConfig, CommandSpec, EventEmitterClient
from stream_bouncer.handlers import DEFAULT_COMMANDS
from stream_bouncer.transport.stdio_adapter import StdioProtocolAdapter

# =============================================================================
# Helpers
# =============================================================================


def make_binary_stream(lines: list[str], newline: str = "\n") -> io.BytesIO:
    """Create a binary stream from lines (simulating stdin)."""
    content = newline.join(lines) + newline
    return io.BytesIO(content.encode("utf-8"))


def read_envelopes_from_stream(stream: io.BytesIO) -> list[dict]:
    """Read JSON envelopes from a binary stream (simulating stdout)."""
    stream.seek(0)
    envelopes = []
    for line in stream:
        line_str = line.decode("utf-8").strip()
        if line_str:
            envelopes.append(json.loads(line_str))
    return envelopes


async def run_adapter(lines, newline="\n", commands=None, client=None):
    stdin = make_binary_stream(lines, newline)
    stdout = io.BytesIO()
    adapter = StdioProtocolAdapter(stdin=stdin, stdout=stdout, stderr=io.BytesIO())
    bridge = Bridge(
        client or EventEmitterClient(),
        config=BridgeConfig(environment="test"),
        commands=commands,
        write=adapter.write_line,
    )
    await adapter.run(bridge)
    # Read before the adapter (and its wrappers) are collected, which closes stdout
    return read_envelopes_from_stream(stdout), stdout.getvalue()


# =============================================================================
# Tests: Basic Command Processing
# =============================================================================


class TestBasicCommands:
    @pytest.mark.anyio
    async def test_ready_comes_first(self):
        envelopes, _ = await run_adapter([])

        assert len(envelopes) == 1
        assert envelopes[0]["evt"] == "READY"
        assert envelopes[0]["data"]["v"] == 1
        assert envelopes[0]["data"]["config"]["environment"] == "test"

    @pytest.mark.anyio
    async def test_ping_command(self):
        envelopes, raw = await run_adapter(['{"nonce":"1","cmd":"PING"}'])

        assert envelopes[1] == {"cmd": "PING", "data": {"pong": True}, "evt": None, "nonce": "1"}
        raw_lines = raw.decode("utf-8").split("\n")
        assert '{"cmd":"PING","data":{"pong":true},"evt":null,"nonce":"1"}' in raw_lines

    @pytest.mark.anyio
    async def test_multiple_commands(self):
        envelopes, _ = await run_adapter(
            [
                '{"nonce":"c1","cmd":"PING"}',
                '{"nonce":"c2","cmd":"PING"}',
                '{"nonce":"c3","cmd":"PING"}',
            ]
        )

        nonces = {e["nonce"] for e in envelopes if e["cmd"] == "PING"}
        assert nonces == {"c1", "c2", "c3"}

    @pytest.mark.anyio
    async def test_invalid_line_does_not_stop_processing(self):
        envelopes, _ = await run_adapter(["not json", '{"nonce":"ok","cmd":"PING"}'])

        errors = [e for e in envelopes if e["evt"] == "ERROR"]
        assert len(errors) == 1
        assert errors[0]["nonce"] is None
        assert any(e["nonce"] == "ok" for e in envelopes)


# =============================================================================
# Tests: Encoding
# =============================================================================


class TestEncoding:
    @pytest.mark.anyio
    async def test_crlf_input(self):
        envelopes, raw = await run_adapter(['{"nonce":"1","cmd":"PING"}'], newline="\r\n")

        assert any(e["nonce"] == "1" for e in envelopes)
        assert b"\r\n" not in raw

    @pytest.mark.anyio
    async def test_bom_is_stripped(self):
        envelopes, _ = await run_adapter(['\ufeff{"nonce":"1","cmd":"PING"}'])

        assert envelopes[1]["nonce"] == "1"
        assert envelopes[1]["evt"] is None

    @pytest.mark.anyio
    async def test_invalid_utf8_is_rejected_not_replaced(self):
        """Undecodable bytes are never echoed back as a mangled nonce."""
        stdin = io.BytesIO(b'{"nonce":"a\xff\xfe","cmd":"PING"}\n{"nonce":"ok","cmd":"PING"}\n')
        stdout = io.BytesIO()
        adapter = StdioProtocolAdapter(stdin=stdin, stdout=stdout, stderr=io.BytesIO())
        bridge = Bridge(EventEmitterClient(), write=adapter.write_line)

        await adapter.run(bridge, announce=False)
        envelopes = read_envelopes_from_stream(stdout)

        errors = [e for e in envelopes if e["evt"] == "ERROR"]
        assert len(errors) == 1
        assert errors[0]["nonce"] is None
        assert errors[0]["data"]["code"] == "INVALID_PAYLOAD"
        assert "\ufffd" not in stdout.getvalue().decode("utf-8")
        assert any(e["nonce"] == "ok" for e in envelopes)

    @pytest.mark.anyio
    async def test_blank_lines_are_skipped(self):
        envelopes, _ = await run_adapter(["", "   ", '{"nonce":"1","cmd":"PING"}'])

        assert len(envelopes) == 2

    @pytest.mark.anyio
    async def test_unicode_round_trip(self):
        async def echo(ctx):
            return ctx.args

        commands = {**DEFAULT_COMMANDS, "ECHO": CommandSpec(handler=echo)}
        envelopes, _ = await run_adapter(
            ['{"nonce":"1","cmd":"ECHO","args":{"text":"héllo 世界 🎉"}}'],
            commands=commands,
        )

        assert envelopes[1]["data"] == {"text": "héllo 世界 🎉"}


# =============================================================================
# Tests: Process-level failures
# =============================================================================


class TestLoopErrors:
    @pytest.mark.anyio
    async def test_callback_exception_becomes_error_envelope(self):
        def boom():
            raise RuntimeError("callback blew up")

        async def schedule_failure(ctx):
            asyncio.get_running_loop().call_soon(boom)
            return {"scheduled": True}

        commands = {"FAIL_LATER": CommandSpec(handler=schedule_failure)}
        envelopes, _ = await run_adapter(['{"nonce":"1","cmd":"FAIL_LATER"}'], commands=commands)

        errors = [e for e in envelopes if e["evt"] == "ERROR"]
        assert errors == [
            {
                "cmd": "DISPATCH",
                "data": {"code": "UNKNOWN_ERROR", "message": "callback blew up"},
                "evt": "ERROR",
                "nonce": None,
            }
        ]

    @pytest.mark.anyio
    async def test_exception_handler_is_restored(self):
        loop = asyncio.get_running_loop()
        before = loop.get_exception_handler()

        await run_adapter([])

        assert loop.get_exception_handler() is before
