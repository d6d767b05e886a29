"""Shared fakes and polling helpers for the test suite."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from runtime_config.remote.store import (
    ConfigVersion, InMemoryConfigStore, InMemoryConnection, RemoteConnection, RemoteStore,
    latest_version,
)

CONFIG_DIR = Path(__file__).parent / "config"


class RefusingStore(RemoteStore):
    """Remote store that is never reachable."""

    def __init__(self) -> None:
        self.attempts = 0
        self.specs: List[Dict[str, Any]] = []

    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        self.attempts += 1
        self.specs.append(dict(spec))
        await asyncio.sleep(0)
        raise ConnectionRefusedError(f"connection refused: {spec.get('url')}")


class HangingStore(RemoteStore):
    """Remote store whose connect never returns."""

    def __init__(self) -> None:
        self.attempts = 0

    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        self.attempts += 1
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")


class GatedConnection(InMemoryConnection):
    """Connection whose queries block until the store's gate opens."""

    async def find_latest(self) -> Optional[ConfigVersion]:
        self.queries += 1
        self._store.waiting += 1
        await self._store.gate.wait()
        self._store.waiting -= 1
        return latest_version(self._store.records)


class GatedStore(InMemoryConfigStore):
    """In-memory store whose queries can be held in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()
        self.waiting = 0

    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        self.connect_specs.append(dict(spec))
        connection = GatedConnection(self)
        self.connections.append(connection)
        return connection


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within %.1fs" % timeout)
        await asyncio.sleep(interval)
