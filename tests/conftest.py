from pathlib import Path

import pytest

from runtime_config.configuration.models import RUNTIME_CONFIG_PATH_ENV, LoaderSettings
from runtime_config.observability.factory import reset_logging
from runtime_config.observability.logging import ConfigLogger, LogLevel, MemoryLogHandler
from runtime_config.remote.store import InMemoryConfigStore

from tests.helpers import CONFIG_DIR, RefusingStore


@pytest.fixture
def config_dir() -> Path:
    return CONFIG_DIR


@pytest.fixture
def runtime_path(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv(RUNTIME_CONFIG_PATH_ENV, raising=False)
    return tmp_path / "runtime.yml"


@pytest.fixture
def settings(runtime_path: Path) -> LoaderSettings:
    """Fast cadence so polling and backoff are observable within a test."""
    return LoaderSettings(
        poll_interval=0.05,
        backoff_initial_delay=0.01,
        backoff_max_delay=0.05,
        connect_timeout=1.0,
        snapshot_path=str(runtime_path),
    )


@pytest.fixture
def store() -> InMemoryConfigStore:
    return InMemoryConfigStore()


@pytest.fixture
def refusing_store() -> RefusingStore:
    return RefusingStore()


@pytest.fixture
def log_handler() -> MemoryLogHandler:
    return MemoryLogHandler()


@pytest.fixture
def memory_logger(log_handler: MemoryLogHandler) -> ConfigLogger:
    logger = ConfigLogger("runtime_config.test", LogLevel.DEBUG)
    logger.add_handler(log_handler)
    return logger


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()
