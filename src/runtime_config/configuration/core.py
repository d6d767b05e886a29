"""
File-backed Runtime Configuration

Reads the merged snapshot that a ConfigurationLoader publishes, typically
from another process, and follows the file as it is replaced.
"""

import copy
import os
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from ..observability.factory import get_runtime_logger
from .merge import ConfigTree, get_path
from .models import RUNTIME_CONFIG_PATH_ENV
from .sources import YAMLConfigurationSource


class RuntimeConfiguration:
    """
    Read-only view of a published runtime configuration file.

    The path defaults to ``$RUNTIME_CONFIG_PATH``. A missing file reads as an
    empty configuration. With hot reload enabled a daemon thread checks the
    file's modification time every ``poll_interval`` seconds and reloads on
    change.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        enable_hot_reload: bool = True,
        poll_interval: float = 1.0,
    ):
        self.logger = get_runtime_logger("runtime_file")
        self._enable_hot_reload = enable_hot_reload
        self._poll_interval = poll_interval
        self._data: ConfigTree = {}
        self._data_lock = threading.RLock()
        self._reload_callbacks: List[Callable[[], None]] = []
        self._hot_reload_thread: Optional[threading.Thread] = None
        self._stop_hot_reload = threading.Event()
        self._source: Optional[YAMLConfigurationSource] = None
        self.path: Optional[Path] = None

        self.set_path(path)

    def set_path(self, path: Optional[Union[str, Path]] = None) -> None:
        """Point at a new file (or ``$RUNTIME_CONFIG_PATH``), load it and watch it."""
        self.stop_hot_reload()

        resolved = path or os.environ.get(RUNTIME_CONFIG_PATH_ENV)
        self.path = Path(resolved) if resolved else None
        self._source = YAMLConfigurationSource(self.path) if self.path else None
        self.reload()

        if self._enable_hot_reload and self._source is not None:
            self._start_hot_reload_monitoring()

    def reload(self) -> None:
        """
        Re-read the file and notify reload callbacks.

        Raises:
            ConfigurationParseError: If the file exists but is malformed
        """
        data = self._source.load() if self._source is not None else {}
        with self._data_lock:
            self._data = data

        for callback in list(self._reload_callbacks):
            try:
                callback()
            except Exception as e:
                self.logger.error("Error in reload callback", extra={"error": str(e)}, exc_info=e)

    def _start_hot_reload_monitoring(self) -> None:
        self._stop_hot_reload.clear()
        self._hot_reload_thread = threading.Thread(
            target=self._hot_reload_worker,
            name=f"runtime-config-watch-{self.path.name if self.path else 'none'}",
            daemon=True,
        )
        self._hot_reload_thread.start()

    def _hot_reload_worker(self) -> None:
        while not self._stop_hot_reload.wait(self._poll_interval):
            source = self._source
            if source is None or not source.has_changed():
                continue
            try:
                self.reload()
            except Exception as e:
                # The old data stays in effect until the file is fixed
                self.logger.error("Failed to reload runtime configuration", extra={
                    "path": str(self.path),
                    "error": str(e),
                }, exc_info=e)

    def stop_hot_reload(self) -> None:
        """Stop the watcher thread."""
        if self._hot_reload_thread is not None:
            self._stop_hot_reload.set()
            if self._hot_reload_thread is not threading.current_thread():
                self._hot_reload_thread.join(timeout=5.0)
            self._hot_reload_thread = None

    def is_hot_reload_enabled(self) -> bool:
        return self._enable_hot_reload

    def add_reload_callback(self, callback: Callable[[], None]) -> None:
        """Add a callback to be called when configuration is reloaded."""
        self._reload_callbacks.append(callback)

    def remove_reload_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._reload_callbacks:
            self._reload_callbacks.remove(callback)

    def get(self, key: str, default: Any = None) -> Any:
        with self._data_lock:
            return copy.deepcopy(get_path(self._data, key, default))

    def get_all(self) -> ConfigTree:
        with self._data_lock:
            return copy.deepcopy(self._data)

    def close(self) -> None:
        self.stop_hot_reload()
