"""
Remote configuration store: driver interface, connector and poller.
"""

from .store import (
    ConfigVersion, RemoteConnection, RemoteStore, InMemoryConfigStore,
    InMemoryConnection, latest_version,
)
from .backoff import ExponentialBackoff
from .connector import ConnectionState, RemoteStoreConnector
from .poller import PollScheduler
from .nats_store import NATSKeyValueStore

__all__ = [
    "ConfigVersion",
    "RemoteConnection",
    "RemoteStore",
    "InMemoryConfigStore",
    "InMemoryConnection",
    "latest_version",
    "ExponentialBackoff",
    "ConnectionState",
    "RemoteStoreConnector",
    "PollScheduler",
    "NATSKeyValueStore",
]
