"""
Remote Store Connector

Owns the single live connection to the remote configuration store. The
connection is rebuilt when the connection spec changes or when the store
closes it. Opening it is retried in the background with exponential
backoff until it succeeds or the connector is closed.
"""

import asyncio
import copy
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from ..configuration.models import LoaderSettings
from ..exceptions import RemoteStoreError
from ..observability.factory import get_runtime_logger
from ..observability.logging import ConfigLogger
from .backoff import ExponentialBackoff
from .store import ConfigVersion, RemoteConnection, RemoteStore


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


_UNSET = object()


class RemoteStoreConnector:
    """
    Connection lifecycle for one loader.

    Args:
        store: Driver used to open connections
        settings: Backoff bounds and connect timeout
        logger: Structured logger; silent unless logging is configured
        on_connected: Called (synchronously) after a connection opens
        on_connect_failed: Called with the error after every failed attempt
    """

    def __init__(
        self,
        store: RemoteStore,
        settings: Optional[LoaderSettings] = None,
        logger: Optional[ConfigLogger] = None,
        on_connected: Optional[Callable[[], None]] = None,
        on_connect_failed: Optional[Callable[[Exception], None]] = None,
    ):
        self.store = store
        self.settings = settings or LoaderSettings()
        self.logger = logger or get_runtime_logger("remote.connector")
        self.on_connected = on_connected
        self.on_connect_failed = on_connect_failed

        self._state = ConnectionState.DISCONNECTED
        self._active_spec: Any = _UNSET
        self._connection: Optional[RemoteConnection] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._backoff = self._new_backoff()
        self._closed = False

    def _new_backoff(self) -> ExponentialBackoff:
        return ExponentialBackoff(
            initial_delay=self.settings.backoff_initial_delay,
            max_delay=self.settings.backoff_max_delay,
            factor=self.settings.backoff_factor,
            jitter=self.settings.backoff_jitter,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED and self._connection is not None

    @property
    def active_spec(self) -> Optional[Dict[str, Any]]:
        return None if self._active_spec is _UNSET else copy.deepcopy(self._active_spec)

    @property
    def connection(self) -> Optional[RemoteConnection]:
        return self._connection

    @property
    def backoff(self) -> ExponentialBackoff:
        return self._backoff

    async def configure(self, spec: Optional[Mapping[str, Any]]) -> bool:
        """
        Point the connector at ``spec``.

        Returns:
            True if the spec differs from the active one and the connection
            was torn down (and, for a non-empty spec, a connect loop started)
        """
        if self._closed:
            return False

        new_spec = copy.deepcopy(dict(spec)) if spec else None
        if self._active_spec is not _UNSET and new_spec == self._active_spec:
            return False

        # Recorded before connecting so overlapping reloads see no change
        self._active_spec = new_spec
        await self._teardown()

        if new_spec is not None:
            self._backoff = self._new_backoff()
            self._connect_task = asyncio.create_task(self._connect_loop(new_spec))
        return True

    async def _connect_loop(self, spec: Dict[str, Any]) -> None:
        url = spec.get("url")
        while not self._closed:
            self._state = ConnectionState.CONNECTING
            try:
                if self.settings.connect_timeout:
                    connection = await asyncio.wait_for(
                        self.store.connect(spec), timeout=self.settings.connect_timeout
                    )
                else:
                    connection = await self.store.connect(spec)
            except asyncio.CancelledError:
                self._state = ConnectionState.DISCONNECTED
                raise
            except Exception as e:
                self._state = ConnectionState.DISCONNECTED
                self.logger.error("Remote configuration store connection error", extra={
                    "url": url,
                    "attempt": self._backoff.attempts,
                    "error": str(e),
                }, exc_info=e)
                if self.on_connect_failed is not None:
                    self.on_connect_failed(e)
                if self._closed:
                    return

                delay = self._backoff.next_delay()
                self.logger.info(f"Remote configuration store connection retry in {int(delay * 1000)}ms", extra={
                    "url": url,
                    "attempt": self._backoff.attempts,
                    "delay_ms": int(delay * 1000),
                })
                await asyncio.sleep(delay)
                continue

            if self._closed:
                await self._close_quietly(connection)
                return

            self._connection = connection
            self._state = ConnectionState.CONNECTED
            self._backoff.reset()
            self.logger.info("Connected to remote configuration store", extra={"url": url})
            if self.on_connected is not None:
                self.on_connected()
            return

    async def fetch_latest(self) -> Optional[ConfigVersion]:
        """
        Query the newest configuration record.

        Raises:
            RemoteStoreError: If not connected or the query fails
        """
        url = (self.active_spec or {}).get("url")
        connection = self._connection
        if connection is None:
            raise RemoteStoreError("Remote configuration store is not connected", url=url)
        try:
            return await connection.find_latest()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if connection.is_closed and connection is self._connection:
                self._connection_lost(url)
            raise RemoteStoreError(
                "Failed to query remote configuration store", url=url, cause=e
            ) from e

    def _connection_lost(self, url: Optional[str]) -> None:
        """Drop a connection the store closed and reconnect with a fresh backoff."""
        self.logger.warning("Lost connection to remote configuration store", extra={"url": url})
        self._connection = None
        self._state = ConnectionState.DISCONNECTED
        if self._closed or self._active_spec is _UNSET or self._active_spec is None:
            return
        self._backoff = self._new_backoff()
        self._connect_task = asyncio.create_task(self._connect_loop(self._active_spec))

    async def _teardown(self) -> None:
        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        connection, self._connection = self._connection, None
        if connection is not None:
            await self._close_quietly(connection)
        self._state = ConnectionState.DISCONNECTED

    async def _close_quietly(self, connection: RemoteConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            self.logger.warning("Error closing remote configuration store connection", extra={
                "error": str(e),
            })

    async def close(self) -> None:
        """Abort any connect loop and close the live connection. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self._teardown()
