"""Pytest configuration and shared fixtures."""

import json

import pytest

from stream_bouncer import Bridge, BridgeConfig, EventEmitterClient


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


class LineCollector:
    """Line sink that keeps everything the bridge writes."""

    def __init__(self):
        self.lines: list[str] = []

    def __call__(self, line: str) -> None:
        self.lines.append(line)

    @property
    def envelopes(self) -> list[dict]:
        return [json.loads(line) for line in self.lines]

    def clear(self) -> None:
        self.lines.clear()


@pytest.fixture
def output():
    return LineCollector()


@pytest.fixture
def client():
    return EventEmitterClient(guilds={"42": {"id": "42", "name": "The Answer"}})


@pytest.fixture
def bridge(client, output):
    return Bridge(client, config=BridgeConfig(environment="test"), write=output)
