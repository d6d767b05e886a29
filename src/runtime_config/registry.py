"""
Process-wide configuration accessor.

Optional convenience on top of explicitly constructed loaders and runtime
files; nothing in the package depends on it.
"""

import threading
from pathlib import Path
from typing import Optional, Union

from .configuration.core import RuntimeConfiguration
from .configuration.facade import ConfigFacade

GlobalConfig = Union[ConfigFacade, RuntimeConfiguration]

_global_config: Optional[GlobalConfig] = None
_lock = threading.Lock()


def set_global(config: GlobalConfig) -> GlobalConfig:
    """Register ``config`` as the process-wide configuration."""
    global _global_config
    with _lock:
        _global_config = config
    return config


def set_global_path(path: Optional[Union[str, Path]] = None) -> RuntimeConfiguration:
    """
    Register a file-backed configuration for ``path``.

    If the registered configuration is already file-backed it is re-pointed
    at the new path instead of being replaced.
    """
    global _global_config
    with _lock:
        if isinstance(_global_config, RuntimeConfiguration):
            _global_config.set_path(path)
        else:
            _global_config = RuntimeConfiguration(path)
        return _global_config


def get_global() -> Optional[GlobalConfig]:
    return _global_config


def clear_global() -> None:
    """Forget the registered configuration, stopping a file watcher if any."""
    global _global_config
    with _lock:
        config, _global_config = _global_config, None
    if isinstance(config, RuntimeConfiguration):
        config.close()
