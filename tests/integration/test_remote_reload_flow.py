"""
End-to-end flows: a loader publishing a snapshot that a second reader
follows, and (when a NATS server is available) the key/value driver.
"""

import asyncio
import json
import os
import uuid
from pathlib import Path

import pytest

from runtime_config import ConfigFacade, ConfigurationBuilder, RuntimeConfiguration
from runtime_config.configuration.models import LoaderSettings
from runtime_config.remote.nats_store import NATSKeyValueStore

from tests.helpers import wait_for

pytestmark = pytest.mark.integration

NATS_URL_ENV = "RUNTIME_CONFIG_TEST_NATS_URL"


@pytest.mark.asyncio
async def test_remote_update_reaches_file_reader(config_dir: Path, settings: LoaderSettings, store, runtime_path: Path):
    store.add_version("2014-02-01T00:00:55Z", {"port": 73, "address": {"city": "Golden"}})
    loader = await (
        ConfigurationBuilder()
        .add_yaml_sources(config_dir / "test.yml", config_dir / "overrides.yml", config_dir / "with_remote.yml")
        .add_defaults({"timeout": 30})
        .with_remote_store(store)
        .with_settings(settings)
        .start()
    )
    facade = ConfigFacade(loader)
    await facade.wait_until_ready(timeout=2)

    reader = RuntimeConfiguration(runtime_path, poll_interval=0.02)
    try:
        assert reader.get("port") == 73
        assert reader.get("address") == {"city": "Golden", "state": "PA"}
        assert reader.get("timeout") == 30

        changes = []
        facade.on_change(lambda: changes.append(facade.get("port")))

        store.add_version("2014-02-01T00:00:56Z", {"port": 74})
        await wait_for(lambda: facade.get("port") == 74)
        # Coarse mtimes could hide the replacement from the reader
        stat = runtime_path.stat()
        os.utime(runtime_path, (stat.st_atime, stat.st_mtime + 1))
        await wait_for(lambda: reader.get("port") == 74)

        assert changes == [74]
        assert reader.get("address") == {"city": "Denver", "state": "PA"}

        await loader.set_runtime_override({"port": 9000})
        assert facade.get("port") == 9000
    finally:
        reader.close()
        await facade.close()

    assert store.open_connections == []


@pytest.mark.asyncio
async def test_unreachable_store_then_local_edits(config_dir: Path, settings: LoaderSettings, refusing_store, tmp_path: Path):
    cfg_file = tmp_path / "app.yml"
    cfg_file.write_text((config_dir / "with_invalid_remote.yml").read_text(encoding="utf-8"), encoding="utf-8")
    ready = []

    loader = await (
        ConfigurationBuilder()
        .add_yaml_source(cfg_file)
        .with_remote_store(refusing_store)
        .with_settings(settings)
        .on_ready(ready.append)
        .start()
    )
    try:
        await loader.wait_until_ready(timeout=2)
        assert loader.get("port") == 99

        cfg_file.write_text("port: 100\n", encoding="utf-8")
        await loader.reload()
        attempts = refusing_store.attempts
        await asyncio.sleep(0.1)

        assert loader.get("port") == 100
        assert loader.get("remote") is None
        assert ready == [loader]
        assert refusing_store.attempts == attempts
    finally:
        await loader.close()


@pytest.mark.asyncio
async def test_nats_key_value_store(settings: LoaderSettings):
    url = os.environ.get(NATS_URL_ENV)
    if not url:
        pytest.skip(f"set {NATS_URL_ENV} to run against a NATS server with JetStream")

    import nats
    from nats.js.api import KeyValueConfig

    bucket = f"config_versions_{uuid.uuid4().hex[:8]}"
    nc = await nats.connect(servers=[url])
    js = nc.jetstream()
    kv = await js.create_key_value(config=KeyValueConfig(bucket=bucket))
    await kv.put("v1", json.dumps({"version": "2014-02-01T00:00:55Z", "config": {"port": 73}}).encode())
    await kv.put("v2", json.dumps({"version": "2014-02-01T00:00:56Z", "config": {"port": 74}}).encode())

    loader = await (
        ConfigurationBuilder()
        .add_defaults({"port": 80})
        .add_overrides({"remote": {"url": url, "bucket": bucket}})
        .with_remote_store(NATSKeyValueStore())
        .with_settings(settings)
        .start()
    )
    try:
        await loader.wait_until_ready(timeout=5)
        assert loader.get("port") == 74

        await kv.put("v3", json.dumps({"version": "2014-02-01T00:00:57Z", "config": {"port": 75}}).encode())
        await wait_for(lambda: loader.get("port") == 75, timeout=5)
    finally:
        await loader.close()
        await js.delete_key_value(bucket)
        await nc.close()
