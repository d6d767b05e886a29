"""
Configuration Builder

Fluent interface for assembling a ConfigurationLoader.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..observability.logging import ConfigLogger
from ..remote.store import RemoteStore
from .loader import ConfigurationLoader, ReadyCallback
from .merge import deep_merge
from .models import LoaderSettings


class ConfigurationBuilder:
    """
    Builder for configuration loaders.

    Example::

        loader = await (
            ConfigurationBuilder()
            .add_yaml_source("config/base.yml")
            .add_yaml_source("config/local.yml")
            .add_defaults({"port": 8080})
            .start()
        )
    """

    def __init__(self):
        self._paths: List[Union[str, Path]] = []
        self._defaults: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}
        self._remote_store: Optional[RemoteStore] = None
        self._settings: Optional[LoaderSettings] = None
        self._settings_overrides: Dict[str, Any] = {}
        self._logger: Optional[ConfigLogger] = None
        self._ready_callback: Optional[ReadyCallback] = None

    def add_yaml_source(self, path: Union[str, Path]) -> 'ConfigurationBuilder':
        """
        Add a YAML file; files added later take precedence.

        Args:
            path: Path to YAML configuration file (may not exist yet)

        Returns:
            Self for method chaining
        """
        self._paths.append(path)
        return self

    def add_yaml_sources(self, *paths: Union[str, Path]) -> 'ConfigurationBuilder':
        self._paths.extend(paths)
        return self

    def add_defaults(self, defaults: Mapping[str, Any]) -> 'ConfigurationBuilder':
        """Merge ``defaults`` into the lowest precedence layer."""
        self._defaults = deep_merge(self._defaults, defaults)
        return self

    def add_overrides(self, overrides: Mapping[str, Any]) -> 'ConfigurationBuilder':
        """Merge ``overrides`` into the initial runtime override layer."""
        self._overrides = deep_merge(self._overrides, overrides)
        return self

    def with_remote_store(self, store: RemoteStore) -> 'ConfigurationBuilder':
        self._remote_store = store
        return self

    def with_settings(self, settings: Optional[LoaderSettings] = None, **overrides: Any) -> 'ConfigurationBuilder':
        """
        Use ``settings`` (or environment-derived settings) with field overrides.

        Returns:
            Self for method chaining
        """
        self._settings = settings
        self._settings_overrides.update(overrides)
        return self

    def with_logger(self, logger: ConfigLogger) -> 'ConfigurationBuilder':
        self._logger = logger
        return self

    def on_ready(self, callback: ReadyCallback) -> 'ConfigurationBuilder':
        self._ready_callback = callback
        return self

    def _resolve_settings(self) -> LoaderSettings:
        if self._settings is None:
            return LoaderSettings.from_environment(**self._settings_overrides)
        if self._settings_overrides:
            return self._settings.model_copy(update=self._settings_overrides)
        return self._settings

    def build(self) -> ConfigurationLoader:
        """Create the loader without loading anything yet."""
        return ConfigurationLoader(
            paths=list(self._paths),
            defaults=self._defaults,
            overrides=self._overrides,
            remote_store=self._remote_store,
            settings=self._resolve_settings(),
            logger=self._logger,
            ready_callback=self._ready_callback,
        )

    async def start(self) -> ConfigurationLoader:
        """Build the loader and run its initial load."""
        return await self.build().start()
