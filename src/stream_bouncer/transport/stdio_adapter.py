"""stdio transport for the bridge.

Maps stdin JSON lines to Bridge.handle and writes envelopes to stdout.

Wire format (newline-delimited JSON, UTF-8 encoded):
- Input (stdin):   {"nonce": "1", "cmd": "PING"}
- Output (stdout): {"cmd":"PING","data":{"pong":true},"evt":null,"nonce":"1"}

Cross-platform considerations:
- All JSON is UTF-8 encoded (no BOM)
- Output newlines are always LF; input accepts LF and CRLF
- Input lines are decoded strictly; invalid UTF-8 is rejected, never replaced
- Binary mode used internally for consistent behavior
"""

from __future__ import annotations

import asyncio
import io
import logging
import sys
from typing import TYPE_CHECKING, Any, BinaryIO

from ..protocol.errors import ErrorCode

if TYPE_CHECKING:
    from ..bridge import Bridge

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
NEWLINE = "\n"


def _ensure_binary_stream(stream: BinaryIO | None, default_fd: int) -> BinaryIO:
    """Return `stream`, or the binary buffer of the matching std stream."""
    if stream is not None:
        return stream
    if default_fd == 0:
        return sys.stdin.buffer
    elif default_fd == 1:
        return sys.stdout.buffer
    else:
        return sys.stderr.buffer


class StdioProtocolAdapter:
    """Bidirectional stdio adapter for a Bridge.

    The adapter only handles serialization and I/O; every line is handed
    to the bridge, which runs each command as its own task.

    Usage:
        adapter = StdioProtocolAdapter()
        bridge = Bridge(client, write=adapter.write_line)
        await adapter.run(bridge)  # Returns once stdin closes and commands drain

    Example session:
        <- {"cmd":"DISPATCH","data":{"v":1,"config":{...}},"evt":"READY","nonce":null}
        -> {"nonce":"1","cmd":"SUBSCRIBE","evt":"MESSAGE_CREATE","args":{"guild_id":"42"}}
        <- {"cmd":"SUBSCRIBE","data":{"evt":"MESSAGE_CREATE"},"evt":null,"nonce":"1"}
        <- {"cmd":"DISPATCH","data":{"guild_id":"42",...},"evt":"MESSAGE_CREATE","nonce":null}
    """

    def __init__(
        self,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
        stderr: BinaryIO | None = None,
    ):
        self._stdin = _ensure_binary_stream(stdin, 0)
        self._stdout = _ensure_binary_stream(stdout, 1)
        self._stderr = _ensure_binary_stream(stderr, 2)

        self._writer = io.TextIOWrapper(
            self._stdout,
            encoding=ENCODING,
            errors="replace",
            newline=NEWLINE,
            write_through=True,
        )
        self._error_writer = io.TextIOWrapper(
            self._stderr,
            encoding=ENCODING,
            errors="replace",
            newline=NEWLINE,
            write_through=True,
        )

    def write_line(self, line: str) -> None:
        """Line sink handed to the Bridge."""
        self._writer.write(line)
        self._writer.flush()

    async def run(self, bridge: Bridge, *, announce: bool = True) -> None:
        """Process stdin until EOF, then wait for in-flight commands."""
        loop = asyncio.get_running_loop()
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: self._on_loop_error(bridge, context))

        if announce:
            bridge.start()

        try:
            while True:
                raw = await self._read_line()
                if raw is None:
                    break  # EOF

                try:
                    line = raw.decode(ENCODING).strip()
                except UnicodeDecodeError:
                    # Invalid UTF-8 is rejected by the pipeline as a malformed payload
                    bridge.handle(raw)
                    continue

                if line.startswith("\ufeff"):
                    line = line[1:]
                if not line:
                    continue

                bridge.handle(line)

            await bridge.drain()

        except asyncio.CancelledError:
            logger.info("stdio adapter cancelled")
        except Exception as e:
            logger.exception(f"stdio adapter error: {e}")
            self._log_error(f"Fatal error: {e}")
            bridge.handle_global_exception(e)
        finally:
            loop.set_exception_handler(previous_handler)

    async def _read_line(self) -> bytes | None:
        """Read one raw line from stdin without blocking the loop."""
        loop = asyncio.get_running_loop()
        line = await loop.run_in_executor(None, self._stdin.readline)
        return line if line else None

    def _on_loop_error(self, bridge: Bridge, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        message = context.get("message", "Unhandled error")
        logger.error(f"Unhandled loop error: {message}", exc_info=exc)
        if exc is not None:
            bridge.handle_global_exception(exc)
        else:
            bridge.error(None, None, ErrorCode.UNKNOWN_ERROR.value, message)

    def _log_error(self, message: str) -> None:
        self._error_writer.write(f"ERROR: {message}{NEWLINE}")
        self._error_writer.flush()
