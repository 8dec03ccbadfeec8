"""stream-bouncer CLI.

Runs the bridge over stdio. The host spawns this process, waits for the
DISPATCH/READY line, then writes one JSON command per line.

Usage:
    stream-bouncer                                   # idle in-process client
    stream-bouncer --client myapp.gateway:make_client
    stream-bouncer --api-endpoint https://example.test/api --cdn-host cdn.example.test
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
from pydantic import ValidationError

from .bridge import Bridge
from .client import ClientFactory, RemoteClient, default_client_factory, load_client_factory
from .config import BridgeConfig
from .transport.stdio_adapter import StdioProtocolAdapter

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.command()
@click.option("--api-endpoint", help="REST endpoint the remote client talks to")
@click.option("--cdn-host", help="CDN host for assets")
@click.option("--invite-endpoint", help="Invite endpoint")
@click.option("--env", "environment", help="Environment name announced in READY")
@click.option("--dedup-window", type=float, help="Seconds a dedup key suppresses repeats")
@click.option("--dedup-max-keys", type=int, help="Maximum dedup keys remembered")
@click.option(
    "--client",
    "client_path",
    help="Client factory as module:attribute (called with the config)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level for stderr logging",
)
def main(
    api_endpoint: str | None,
    cdn_host: str | None,
    invite_endpoint: str | None,
    environment: str | None,
    dedup_window: float | None,
    dedup_max_keys: int | None,
    client_path: str | None,
    log_level: str | None,
) -> None:
    """Bridge line-delimited JSON commands on stdin to a real-time client."""
    try:
        config = BridgeConfig.from_env(
            api_endpoint=api_endpoint,
            cdn_host=cdn_host,
            invite_endpoint=invite_endpoint,
            environment=environment,
            dedup_window=dedup_window,
            dedup_max_keys=dedup_max_keys,
            log_level=log_level.upper() if log_level else None,
        )
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e

    # Protocol goes to stdout, so logs go to stderr
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )

    factory: ClientFactory = default_client_factory
    if client_path:
        try:
            factory = load_client_factory(client_path)
        except (ImportError, ValueError) as e:
            raise click.BadParameter(str(e), param_hint="--client") from e

    client = factory(config)

    if sys.platform == "win32":
        import msvcrt

        msvcrt.setmode(sys.stdin.fileno(), os.O_BINARY)
        msvcrt.setmode(sys.stdout.fileno(), os.O_BINARY)
        msvcrt.setmode(sys.stderr.fileno(), os.O_BINARY)

    try:
        asyncio.run(run_bridge(config, client))
    except KeyboardInterrupt:
        click.echo("Shutting down", err=True)


async def run_bridge(config: BridgeConfig, client: RemoteClient) -> None:
    """Run a Bridge over the process's stdio until stdin closes."""
    adapter = StdioProtocolAdapter()
    bridge = Bridge(client, config=config, write=adapter.write_line)
    await adapter.run(bridge)


if __name__ == "__main__":
    main()
