"""
runtime-config

Merges compiled-in defaults, YAML files, a remote versioned configuration
store and runtime overrides into one published configuration snapshot.
"""

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from .configuration import (
    ConfigFacade, ConfigurationBuilder, ConfigurationLoader, LoaderSettings,
    RuntimeConfiguration,
)
from .configuration.loader import ReadyCallback
from .exceptions import (
    ConfigurationError, ConfigurationParseError, RemoteStoreError,
    RuntimeConfigError, SnapshotWriteError,
)
from .registry import clear_global, get_global, set_global, set_global_path
from .remote.store import RemoteStore

__version__ = "0.3.0"


async def loader(
    paths: Optional[Iterable[Union[str, Path]]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    remote_store: Optional[RemoteStore] = None,
    settings: Optional[LoaderSettings] = None,
    ready_callback: Optional[ReadyCallback] = None,
) -> ConfigurationLoader:
    """Create and start a ConfigurationLoader."""
    return await ConfigurationLoader(
        paths=paths,
        defaults=defaults,
        overrides=overrides,
        remote_store=remote_store,
        settings=settings,
        ready_callback=ready_callback,
    ).start()


def load(path: Optional[Union[str, Path]] = None, enable_hot_reload: bool = True) -> RuntimeConfiguration:
    """Open a published runtime configuration file."""
    return RuntimeConfiguration(path, enable_hot_reload=enable_hot_reload)


__all__ = [
    "loader",
    "load",
    "ConfigFacade",
    "ConfigurationBuilder",
    "ConfigurationLoader",
    "LoaderSettings",
    "RuntimeConfiguration",
    "ConfigurationError",
    "ConfigurationParseError",
    "RemoteStoreError",
    "RuntimeConfigError",
    "SnapshotWriteError",
    "set_global",
    "set_global_path",
    "get_global",
    "clear_global",
]
