"""
Configuration Loader

Merges defaults, YAML files, the newest remote configuration record and
runtime overrides into one snapshot, republishing it only when its content
changes.

Every trigger (start, explicit reload, new file list, runtime override,
poll tick, remote connection opened) runs under one lock per loader, so the
"publish only on change" and "ready fires once" guarantees hold when
triggers overlap.
"""

import asyncio
import copy
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, Iterable, List, Mapping, Optional, Set, Union

from ..exceptions import ConfigurationError, RemoteStoreError
from ..observability.factory import get_runtime_logger
from ..observability.logging import ConfigLogger
from ..remote.connector import RemoteStoreConnector
from ..remote.nats_store import NATSKeyValueStore
from ..remote.poller import PollScheduler
from ..remote.store import RemoteStore
from .merge import ConfigTree, get_path, merge_layers
from .models import LoaderSettings
from .snapshot import RuntimeSnapshotWriter
from .sources import Layer, StaticConfigurationSource, read_yaml_files

ReadyCallback = Callable[['ConfigurationLoader'], None]
ChangeCallback = Callable[[], None]


class ConfigurationLoader:
    """
    Reload coordinator for one service's configuration.

    Layers, lowest precedence first: ``defaults``, the merged YAML ``paths``,
    the remote store's newest record, and the runtime override (initially
    ``overrides``).

    Example::

        loader = ConfigurationLoader(paths=["config.yml", "local.yml"])
        await loader.start()
        await loader.wait_until_ready()
        port = loader.get("port")
        await loader.close()
    """

    def __init__(
        self,
        paths: Optional[Iterable[Union[str, Path]]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        remote_store: Optional[RemoteStore] = None,
        settings: Optional[LoaderSettings] = None,
        logger: Optional[ConfigLogger] = None,
        ready_callback: Optional[ReadyCallback] = None,
    ):
        self.settings = settings or LoaderSettings()
        self.logger = logger or get_runtime_logger("loader")
        self.loader_id = uuid.uuid4().hex

        self._paths: List[Union[str, Path]] = list(paths or [])
        self._defaults = StaticConfigurationSource(defaults, Layer.DEFAULTS)
        self._runtime_override = StaticConfigurationSource(overrides, Layer.RUNTIME_OVERRIDE)
        self._file_data: ConfigTree = {}
        self._remote_data: ConfigTree = {}
        self._data: Optional[ConfigTree] = None
        self.version = 0

        self._lock = asyncio.Lock()
        self._ready = False
        self._ready_event = asyncio.Event()
        self._ready_callbacks: List[ReadyCallback] = [ready_callback] if ready_callback else []
        self._change_callbacks: List[ChangeCallback] = []
        self._tasks: Set[asyncio.Task] = set()
        self._started = False
        self._closed = False

        self.remote_store = remote_store or NATSKeyValueStore()
        self.connector = RemoteStoreConnector(
            self.remote_store,
            settings=self.settings,
            logger=logger,
            on_connected=self._on_remote_connected,
            on_connect_failed=self._on_remote_connect_failed,
        )
        self.poller = PollScheduler(self.settings.poll_interval, self._refresh_remote, logger=logger)
        self.snapshot = (
            RuntimeSnapshotWriter(self.settings.snapshot_path, self.settings.snapshot_mode)
            if self.settings.write_snapshot else None
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> 'ConfigurationLoader':
        """
        Run the initial load. Safe to call more than once.

        Raises:
            ConfigurationError: If the initial load fails; the ready latch
                still fires so waiters are released
        """
        if not self._started and not self._closed:
            self._started = True
            try:
                await self.reload()
            except ConfigurationError:
                self._mark_ready()
                raise
        return self

    async def __aenter__(self) -> 'ConfigurationLoader':
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop polling, abort reconnects and close the remote connection."""
        if self._closed:
            return
        self._closed = True

        self.poller.close()
        for task in list(self._tasks):
            if task is not asyncio.current_task():
                task.cancel()
        await self.connector.close()
        self._ready_callbacks.clear()

        self.logger.debug("Configuration loader closed", extra={"loader_id": self.loader_id})

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def reload(self) -> None:
        """
        Re-read files, re-evaluate the remote connection, fetch and re-merge.

        Raises:
            ConfigurationParseError: If a configuration file is malformed;
                the previous snapshot stays published
        """
        if self._closed:
            return
        async with self._lock:
            if self._closed:
                return
            with self.logger.loader_context(self.loader_id):
                self._file_data = read_yaml_files(self._paths)
                self._combine()
                await self._sync_remote()

    async def set_files(self, paths: Iterable[Union[str, Path]]) -> None:
        """Replace the YAML file list and reload."""
        if self._closed:
            return
        self._paths = list(paths)
        await self.reload()

    async def set_runtime_override(self, overrides: Optional[Mapping[str, Any]]) -> None:
        """Replace the runtime override layer and reload."""
        if self._closed:
            return
        self._runtime_override.update(overrides)
        await self.reload()

    async def reset_runtime_override(self) -> None:
        """Clear the runtime override layer and reload."""
        await self.set_runtime_override({})

    async def _refresh_remote(self) -> None:
        # Poll ticks and freshly opened connections: files are not re-read
        if self._closed:
            return
        async with self._lock:
            if self._closed:
                return
            with self.logger.loader_context(self.loader_id):
                await self._sync_remote()

    # ------------------------------------------------------------------
    # Remote layer
    # ------------------------------------------------------------------

    def _remote_spec(self) -> Optional[Dict[str, Any]]:
        key = self.settings.remote_key
        spec = self._runtime_override.get(key)
        if spec is None:
            spec = self._file_data.get(key)
        if not spec:
            return None
        if not isinstance(spec, Mapping):
            self.logger.warning("Ignoring remote store settings that are not a mapping", extra={
                "key": key,
                "type": type(spec).__name__,
            })
            return None
        return dict(spec)

    async def _sync_remote(self) -> None:
        spec = self._remote_spec()
        await self.connector.configure(spec)

        if spec is None:
            if self._remote_data:
                self._remote_data = {}
                self._combine()
            self._mark_ready()
            return

        if self.connector.is_connected:
            await self._fetch_remote()

    async def _fetch_remote(self) -> None:
        try:
            record = await self.connector.fetch_latest()
        except RemoteStoreError as e:
            # Keep the last good remote layer
            self.logger.error("Failed to fetch remote configuration", extra=e.to_dict(), exc_info=e)
        else:
            self._remote_data = copy.deepcopy(record.config) if record is not None else {}

        try:
            self._combine()
        finally:
            self._mark_ready()
            if not self._closed:
                self.poller.schedule()

    def _on_remote_connected(self) -> None:
        if not self._closed:
            self._spawn(self._refresh_remote())

    def _on_remote_connect_failed(self, error: Exception) -> None:
        # A store that is down at startup must not hold back readiness
        self._mark_ready()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error("Remote configuration refresh failed", extra={
                "error": str(error),
                "error_type": type(error).__name__,
            }, exc_info=error)

    # ------------------------------------------------------------------
    # Merge and publish
    # ------------------------------------------------------------------

    def _combine(self) -> bool:
        # A fetch that completes after close() must not publish
        if self._closed:
            return False
        new_data = merge_layers([
            self._defaults.data,
            self._file_data,
            self._remote_data,
            self._runtime_override.data,
        ])
        if self._data is not None and new_data == self._data:
            return False

        if self.snapshot is not None:
            self.snapshot.write(new_data)
        self._data = new_data
        self.version += 1

        self.logger.info(f"Reading new config (PID {os.getpid()})...", extra={
            "version": self.version,
            "runtime_file": str(self.runtime_file) if self.runtime_file else None,
        })
        self.logger.debug("Merged configuration", extra={"config": new_data})

        for callback in list(self._change_callbacks):
            self._invoke(callback)
        return True

    def _mark_ready(self) -> None:
        if self._ready or self._closed:
            return
        self._ready = True
        self._ready_event.set()

        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            self._invoke(callback, self)

    def _invoke(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            self.logger.error("Error in configuration callback", extra={
                "callback": getattr(callback, "__name__", repr(callback)),
                "error": str(e),
            }, exc_info=e)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def ready(self, callback: ReadyCallback) -> None:
        """Call ``callback(loader)`` once the initial load has completed."""
        if self._ready:
            self._invoke(callback, self)
        elif not self._closed:
            self._ready_callbacks.append(callback)

    async def wait_until_ready(self, timeout: Optional[float] = None) -> 'ConfigurationLoader':
        """Wait for the ready latch; raises asyncio.TimeoutError after ``timeout``."""
        await asyncio.wait_for(self._ready_event.wait(), timeout=timeout)
        return self

    @property
    def is_ready(self) -> bool:
        return self._ready

    def add_change_callback(self, callback: ChangeCallback) -> None:
        """Call ``callback()`` after every published change."""
        self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: ChangeCallback) -> None:
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        """Value at a dotted path of the current snapshot, or ``default``."""
        return copy.deepcopy(get_path(self._data or {}, path, default))

    def get_all(self) -> ConfigTree:
        """Copy of the current snapshot."""
        return copy.deepcopy(self._data or {})

    @property
    def paths(self) -> List[Union[str, Path]]:
        return list(self._paths)

    @property
    def remote_data(self) -> ConfigTree:
        return copy.deepcopy(self._remote_data)

    @property
    def runtime_file(self) -> Optional[Path]:
        return self.snapshot.path if self.snapshot is not None else None
