from pathlib import Path

import pytest

import runtime_config
from runtime_config import registry
from runtime_config.configuration.core import RuntimeConfiguration
from runtime_config.configuration.facade import ConfigFacade
from runtime_config.configuration.loader import ConfigurationLoader
from runtime_config.configuration.models import LoaderSettings


@pytest.fixture(autouse=True)
def _clear_registry():
    yield
    registry.clear_global()


@pytest.mark.asyncio
async def test_facade_delegates_to_loader(config_dir: Path, settings: LoaderSettings, store):
    loader = ConfigurationLoader([config_dir / "test.yml"], remote_store=store, settings=settings)
    facade = ConfigFacade(loader)
    seen = []
    facade.ready(seen.append)

    await loader.start()
    assert await facade.wait_until_ready(timeout=1) is facade
    assert facade.is_ready
    assert seen == [facade]
    assert facade.loader is loader
    assert facade.get("address.state") == "CO"
    assert facade.get("address.zip", "80401") == "80401"
    assert facade.get_all()["port"] == 80

    await facade.close()
    assert loader.is_closed


@pytest.mark.asyncio
async def test_facade_change_subscription(settings: LoaderSettings, store, tmp_path: Path):
    cfg_file = tmp_path / "app.yml"
    cfg_file.write_text("port: 1\n", encoding="utf-8")
    facade = ConfigFacade(await ConfigurationLoader([cfg_file], remote_store=store, settings=settings).start())

    calls = []
    unsubscribe = facade.on_change(lambda: calls.append(facade.get("port")))

    cfg_file.write_text("port: 2\n", encoding="utf-8")
    await facade.reload()
    unsubscribe()
    cfg_file.write_text("port: 3\n", encoding="utf-8")
    await facade.reload()

    assert calls == [2]
    assert facade.get("port") == 3
    await facade.close()


@pytest.mark.asyncio
async def test_package_level_loader(config_dir: Path, settings: LoaderSettings, store):
    loader = await runtime_config.loader(
        paths=[config_dir / "test.yml"], defaults={"timeout": 5}, remote_store=store, settings=settings
    )
    try:
        assert loader.is_ready
        assert loader.get("timeout") == 5
    finally:
        await loader.close()


def test_package_level_load(runtime_path: Path):
    runtime_path.write_text("port: 80\n", encoding="utf-8")
    cfg = runtime_config.load(runtime_path, enable_hot_reload=False)
    assert isinstance(cfg, RuntimeConfiguration)
    assert cfg.get("port") == 80


@pytest.mark.asyncio
async def test_global_facade(config_dir: Path, settings: LoaderSettings, store):
    facade = ConfigFacade(await ConfigurationLoader([config_dir / "test.yml"], remote_store=store, settings=settings).start())
    assert registry.get_global() is None

    assert registry.set_global(facade) is facade
    assert registry.get_global().get("port") == 80

    registry.clear_global()
    assert registry.get_global() is None
    await facade.close()


def test_global_path_is_repointed(runtime_path: Path, tmp_path: Path):
    other = tmp_path / "other.yml"
    runtime_path.write_text("port: 80\n", encoding="utf-8")
    other.write_text("port: 99\n", encoding="utf-8")

    first = registry.set_global_path(runtime_path)
    assert registry.get_global() is first
    assert first.get("port") == 80

    second = registry.set_global_path(other)
    assert second is first
    assert second.get("port") == 99

    registry.clear_global()
    assert first._hot_reload_thread is None
