"""
Config Facade

The accessor handed to application code. It exposes reads, subscriptions
and lifecycle, and leaves every decision to the wrapped loader.
"""

from typing import Any, Callable, Optional

from .loader import ConfigurationLoader
from .merge import ConfigTree


class ConfigFacade:
    """Read-mostly view over a ConfigurationLoader."""

    def __init__(self, loader: ConfigurationLoader):
        self._loader = loader

    @property
    def loader(self) -> ConfigurationLoader:
        return self._loader

    def get(self, path: str, default: Any = None) -> Any:
        """Value at a dotted path; absent keys return ``default``."""
        return self._loader.get(path, default)

    def get_all(self) -> ConfigTree:
        return self._loader.get_all()

    def ready(self, callback: Callable[['ConfigFacade'], None]) -> None:
        """Call ``callback(facade)`` once the initial load has completed."""
        self._loader.ready(lambda _loader: callback(self))

    async def wait_until_ready(self, timeout: Optional[float] = None) -> 'ConfigFacade':
        await self._loader.wait_until_ready(timeout)
        return self

    @property
    def is_ready(self) -> bool:
        return self._loader.is_ready

    def on_change(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to published changes; returns an unsubscribe function."""
        self._loader.add_change_callback(callback)
        return lambda: self._loader.remove_change_callback(callback)

    async def reload(self) -> None:
        await self._loader.reload()

    async def close(self) -> None:
        await self._loader.close()
