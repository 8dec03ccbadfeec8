"""Bridge - the composition root.

Owns the subscription registry and dedup gate, wires the remote client's
events into the fan-out, and feeds host messages to the command pipeline.
All output, whatever its origin, is written as one JSON line per envelope.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable, Hashable, Mapping
from functools import partial
from types import MappingProxyType
from typing import Any

from .client import RemoteClient
from .config import PROTOCOL_VERSION, BridgeConfig
from .dedup import DedupGate
from .handlers import DEFAULT_COMMANDS, DEFAULT_EVENT_BINDINGS, DEFAULT_EVENTS
from .protocol.commands import CommandName, CommandSpec
from .protocol.errors import UNKNOWN_ERROR_MESSAGE, APIError, ConfigurationError, ErrorCode
from .protocol.events import Envelope, EventName, EventSpec
from .protocol.fanout import EventFanout
from .protocol.handler import CommandDispatcher
from .subscriptions import Subscription, SubscriptionRegistry

logger = logging.getLogger(__name__)

LineWriter = Callable[[str], None]


def _stdout_writer(line: str) -> None:
    sys.stdout.write(line)
    sys.stdout.flush()


class Bridge:
    """JSON command/event bridge in front of a remote client.

    Usage:
        bridge = Bridge(client, config=BridgeConfig.from_env())
        bridge.start()                         # emits DISPATCH/READY
        bridge.handle('{"nonce":"1","cmd":"PING"}')
        await bridge.drain()

    Args:
        client: Remote client exposing `on(event_name, callback)`.
        config: Bridge configuration (defaults if omitted).
        commands: name -> CommandSpec registry.
        events: event name -> EventSpec registry.
        event_bindings: client event name -> bridge event name.
        write: Line sink; receives complete lines including "\\n".
    """

    def __init__(
        self,
        client: RemoteClient,
        *,
        config: BridgeConfig | None = None,
        commands: Mapping[str, CommandSpec] | None = None,
        events: Mapping[str, EventSpec] | None = None,
        event_bindings: Mapping[str, str] | None = None,
        write: LineWriter | None = None,
    ) -> None:
        self.client = client
        self.config = config or BridgeConfig()
        self.commands = MappingProxyType(dict(DEFAULT_COMMANDS if commands is None else commands))
        self.events = MappingProxyType(dict(DEFAULT_EVENTS if events is None else events))
        self._write = write or _stdout_writer

        self.subscriptions = SubscriptionRegistry(self._subscription_dispatcher)
        self.dedup = DedupGate(
            window=self.config.dedup_window,
            max_keys=self.config.dedup_max_keys,
        )
        self._dispatcher = CommandDispatcher(
            self.commands,
            server=self,
            client=client,
            send=self.send,
        )
        self._fanout = EventFanout(
            self.events,
            server=self,
            client=client,
            subscriptions=self.subscriptions,
            dedup=self.dedup,
        )
        self._tasks: set[asyncio.Task[Envelope]] = set()

        self.mount_listeners(
            client, DEFAULT_EVENT_BINDINGS if event_bindings is None else event_bindings
        )

    # =========================================================================
    # Host -> bridge
    # =========================================================================

    def handle(self, message: str | bytes) -> asyncio.Task[Envelope]:
        """Schedule one host message through the command pipeline.

        Must be called from a running event loop. The returned task always
        completes by emitting exactly one envelope.
        """
        task = asyncio.get_running_loop().create_task(self._dispatcher.process(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def process(self, message: str | bytes) -> Envelope:
        """Run one host message through the pipeline and wait for it."""
        return await self._dispatcher.process(message)

    async def drain(self) -> None:
        """Wait until every in-flight command has emitted its envelope."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # Output
    # =========================================================================

    def send(self, envelope: Envelope) -> None:
        """Serialize and write one envelope."""
        self._write(envelope.to_line() + "\n")

    def dispatch(
        self,
        nonce: str | None = None,
        cmd: str | None = CommandName.DISPATCH.value,
        evt: str | None = None,
        data: Any = None,
    ) -> None:
        self.send(Envelope(cmd=cmd, data=data, evt=evt, nonce=nonce))

    def error(
        self,
        nonce: str | None = None,
        cmd: str | None = CommandName.DISPATCH.value,
        code: str = ErrorCode.UNKNOWN_ERROR.value,
        message: str = UNKNOWN_ERROR_MESSAGE,
    ) -> None:
        self.send(Envelope.error(nonce, cmd, code, message))

    def start(self) -> None:
        """Announce readiness; the host waits for this before sending commands."""
        self.send(
            Envelope.dispatch(
                EventName.READY,
                {"v": PROTOCOL_VERSION, "config": self.config.ready_config()},
            )
        )

    def handle_global_exception(self, exc: BaseException) -> None:
        """Report a failure that happened outside any command pipeline."""
        error = APIError.from_exception(exc)
        self.error(None, None, error.code, error.message)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def has_event(self, evt: str) -> bool:
        return self._fanout.has_handler(evt)

    def add_subscription(self, evt: str, args: Mapping[str, Any] | None = None) -> Subscription:
        return self.subscriptions.add_subscription(evt, args)

    def remove_subscription(self, evt: str, args: Mapping[str, Any] | None = None) -> bool:
        return self.subscriptions.remove_subscription(evt, args)

    def get_subscription(
        self, evt: str, args: Mapping[str, Any] | None = None
    ) -> Subscription | None:
        return self.subscriptions.get_subscription(evt, args)

    def dispatch_to_subscriptions(
        self, evt: str, data: Any, dedup_key: Hashable | None = None
    ) -> int:
        return self._fanout.dispatch_to_subscriptions(evt, data, dedup_key)

    def _subscription_dispatcher(self, evt: str) -> Callable[[Any], None]:
        return partial(self.dispatch, None, CommandName.DISPATCH.value, evt)

    # =========================================================================
    # Remote client -> bridge
    # =========================================================================

    def mount_listeners(self, client: RemoteClient, bindings: Mapping[str, str]) -> None:
        """Route each bound client event into the fan-out.

        Raises:
            ConfigurationError: If a binding names an event with no handler.
        """
        for client_event, evt in bindings.items():
            if not self.has_event(evt):
                raise ConfigurationError(
                    f"Client event {client_event!r} is bound to {evt!r}, which has no handler"
                )
            client.on(client_event, partial(self._on_remote_event, evt))
            logger.debug(f"Mounted client event {client_event} -> {evt}")

    def _on_remote_event(self, evt: str, *payload: Any) -> None:
        # Clients that report (before, after) pairs deliver the new state last
        raw = payload[-1] if payload else None
        try:
            self._fanout.publish(evt, raw)
        except Exception as e:
            logger.exception(f"Error handling remote event {evt}: {e}")
            self.handle_global_exception(e)
