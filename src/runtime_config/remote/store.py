"""
Remote Configuration Store Interface

A remote store holds versioned configuration records. The loader only ever
needs the newest one, so a connection exposes a single query.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..configuration.merge import ConfigTree


@dataclass
class ConfigVersion:
    """One versioned record of the remote store."""
    version: Any
    config: ConfigTree = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> 'ConfigVersion':
        config = document.get("config") or {}
        if not isinstance(config, Mapping):
            config = {}
        return cls(version=document.get("version"), config=dict(config))

    def to_document(self) -> Dict[str, Any]:
        version = self.version
        if isinstance(version, datetime):
            version = version.isoformat()
        return {"version": version, "config": copy.deepcopy(self.config)}

    def sort_key(self) -> Tuple[int, float]:
        """
        Total ordering over heterogeneous versions.

        Datetimes, numbers and ISO-8601 strings compare by timestamp; records
        with a missing or unreadable version sort before all others.
        """
        timestamp = _version_timestamp(self.version)
        if timestamp is None:
            return (0, 0.0)
        return (1, timestamp)


def _version_timestamp(version: Any) -> Optional[float]:
    if isinstance(version, bool):
        return None
    if isinstance(version, datetime):
        if version.tzinfo is None:
            version = version.replace(tzinfo=timezone.utc)
        return version.timestamp()
    if isinstance(version, (int, float)):
        return float(version)
    if isinstance(version, str):
        try:
            return _version_timestamp(datetime.fromisoformat(version.replace("Z", "+00:00")))
        except ValueError:
            try:
                return float(version)
            except ValueError:
                return None
    return None


def latest_version(records: Iterable[ConfigVersion]) -> Optional[ConfigVersion]:
    """The record with the highest version, or None for an empty store."""
    latest: Optional[ConfigVersion] = None
    for record in records:
        if latest is None or record.sort_key() > latest.sort_key():
            latest = record
    return latest


class RemoteConnection(ABC):
    """A live connection to a remote configuration store."""

    @abstractmethod
    async def find_latest(self) -> Optional[ConfigVersion]:
        """Return the newest configuration record, or None if there is none."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        pass


class RemoteStore(ABC):
    """Driver that opens connections from a connection spec."""

    @abstractmethod
    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        """
        Open a connection.

        Args:
            spec: The reserved ``remote`` block of the configuration

        Raises:
            Exception: Any driver error; the connector retries with backoff
        """
        pass


class InMemoryConfigStore(RemoteStore):
    """
    Process-local store, useful for embedding and tests.

    ``fail_connects`` makes the next N connect attempts raise, and
    ``fail_queries`` does the same for queries.
    """

    def __init__(self, records: Optional[Iterable[ConfigVersion]] = None):
        self.records: List[ConfigVersion] = list(records or [])
        self.connections: List['InMemoryConnection'] = []
        self.connect_specs: List[Dict[str, Any]] = []
        self.fail_connects = 0
        self.fail_queries = 0

    def add_version(self, version: Any, config: Mapping[str, Any]) -> ConfigVersion:
        record = ConfigVersion(version=version, config=copy.deepcopy(dict(config)))
        self.records.append(record)
        return record

    def clear(self) -> None:
        self.records.clear()

    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        self.connect_specs.append(copy.deepcopy(dict(spec)))
        await asyncio.sleep(0)
        if self.fail_connects:
            self.fail_connects -= 1
            raise ConnectionError(f"connection refused: {spec.get('url')}")
        connection = InMemoryConnection(self)
        self.connections.append(connection)
        return connection

    @property
    def open_connections(self) -> List['InMemoryConnection']:
        return [c for c in self.connections if not c.is_closed]


class InMemoryConnection(RemoteConnection):

    def __init__(self, store: InMemoryConfigStore):
        self._store = store
        self._closed = False
        self.queries = 0

    async def find_latest(self) -> Optional[ConfigVersion]:
        if self._closed:
            raise ConnectionError("connection closed")
        self.queries += 1
        await asyncio.sleep(0)
        if self._store.fail_queries:
            self._store.fail_queries -= 1
            raise ConnectionError("query failed")
        record = latest_version(self._store.records)
        return copy.deepcopy(record) if record is not None else None

    async def close(self) -> None:
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed
