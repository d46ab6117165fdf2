"""Shared fixtures for offrecord tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from offrecord.server import RelayServer


class FakeListener:
    """Records every frame a channel pushes to it."""

    def __init__(self) -> None:
        self.sent: list[Any] = []
        self.closed = False

    def send(self, data: str) -> None:
        self.sent.append(json.loads(data))


async def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll until predicate() is true or fail after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setenv("OFFRECORD_CONFIG", str(path))
    return path


@pytest.fixture
def relay_server() -> RelayServer:
    return RelayServer(config={"presence_interval": 3600.0, "ws_heartbeat": 0})


@pytest.fixture
async def relay_client(aiohttp_client, relay_server):
    return await aiohttp_client(relay_server.app)


@pytest.fixture
def relay_url(relay_client) -> str:
    return str(relay_client.make_url("")).rstrip("/")
