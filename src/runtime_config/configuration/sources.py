"""
Configuration Sources

Readers for the static layers of the merged configuration: YAML files and
trees supplied directly by the caller.
"""

import copy
from abc import ABC, abstractmethod
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import yaml

from ..exceptions import ConfigurationError, ConfigurationParseError
from .merge import ConfigTree, deep_merge


class Layer(IntEnum):
    """Precedence of each layer; higher values win."""
    DEFAULTS = 0
    FILES = 100
    REMOTE = 200
    RUNTIME_OVERRIDE = 300


class ConfigurationSource(ABC):
    """Base class for configuration sources."""

    @abstractmethod
    def load(self) -> ConfigTree:
        """Load configuration data from this source."""
        pass

    @abstractmethod
    def get_priority(self) -> int:
        """Get the priority of this configuration source."""
        pass

    @abstractmethod
    def has_changed(self) -> bool:
        """Check if the configuration source has changed since the last load."""
        pass


class YAMLConfigurationSource(ConfigurationSource):
    """
    Configuration source backed by a single YAML file.

    A missing file loads as an empty tree. A file that exists but is not a
    YAML mapping raises ConfigurationParseError.
    """

    def __init__(self, file_path: Union[str, Path], priority: int = Layer.FILES):
        self.file_path = Path(file_path)
        self._priority = int(priority)
        self._last_modified: Optional[float] = None
        self._loaded = False

    def _current_mtime(self) -> Optional[float]:
        try:
            return self.file_path.stat().st_mtime
        except FileNotFoundError:
            return None

    def load(self) -> ConfigTree:
        """Load configuration from the YAML file."""
        mtime = self._current_mtime()
        self._last_modified = mtime
        self._loaded = True

        if mtime is None:
            return {}

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            # Removed between stat and open
            return {}
        except yaml.YAMLError as e:
            raise ConfigurationParseError(
                f"Invalid YAML in configuration file: {self.file_path}",
                config_path=str(self.file_path),
                validation_errors=[str(e)],
                cause=e,
            )
        except OSError as e:
            raise ConfigurationError(
                f"Error reading configuration file: {self.file_path}",
                config_path=str(self.file_path),
                validation_errors=[str(e)],
                cause=e,
            )

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationParseError(
                f"Configuration file is not a mapping at root level: {self.file_path}",
                config_path=str(self.file_path),
                validation_errors=[f"root is {type(config).__name__}"],
            )
        return config

    def get_priority(self) -> int:
        return self._priority

    def has_changed(self) -> bool:
        """True when the file's mtime differs from the last load, including appearing or disappearing."""
        if not self._loaded:
            return True
        return self._current_mtime() != self._last_modified


class StaticConfigurationSource(ConfigurationSource):
    """Tree supplied directly by the caller (defaults, runtime overrides)."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None, priority: int = Layer.DEFAULTS):
        self._data: ConfigTree = copy.deepcopy(dict(data or {}))
        self._priority = int(priority)
        self._changed = True

    def update(self, data: Optional[Mapping[str, Any]]) -> None:
        self._data = copy.deepcopy(dict(data or {}))
        self._changed = True

    @property
    def data(self) -> ConfigTree:
        """The tree itself; callers must not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._data.get(key, default))

    def load(self) -> ConfigTree:
        self._changed = False
        return copy.deepcopy(self._data)

    def get_priority(self) -> int:
        return self._priority

    def has_changed(self) -> bool:
        return self._changed


def read_yaml_files(paths: Iterable[Union[str, Path]]) -> ConfigTree:
    """
    Read YAML files in order and merge them, later files winning.

    Args:
        paths: File paths, lowest precedence first

    Returns:
        The merged ``FILES`` layer

    Raises:
        ConfigurationParseError: If any existing file is malformed
    """
    merged: Dict[str, Any] = {}
    for path in paths:
        merged = deep_merge(merged, YAMLConfigurationSource(path).load())
    return merged
