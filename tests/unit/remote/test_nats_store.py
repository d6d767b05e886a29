import json
from types import SimpleNamespace

import pytest
from nats.js.errors import NoKeysError

from runtime_config.exceptions import RemoteStoreError
from runtime_config.remote import nats_store
from runtime_config.remote.nats_store import NATSKeyValueConnection, NATSKeyValueStore


class FakeKeyValue:
    def __init__(self, entries=None):
        self.entries = dict(entries or {})

    async def keys(self):
        if not self.entries:
            raise NoKeysError()
        return list(self.entries)

    async def get(self, key):
        value = self.entries[key]
        return SimpleNamespace(key=key, value=value)


class FakeJetStream:
    def __init__(self, kv=None, error=None):
        self.kv = kv or FakeKeyValue()
        self.error = error
        self.buckets = []

    async def key_value(self, bucket):
        self.buckets.append(bucket)
        if self.error is not None:
            raise self.error
        return self.kv


class FakeNATS:
    def __init__(self, js):
        self.js = js
        self.is_closed = False

    def jetstream(self):
        return self.js

    async def close(self):
        self.is_closed = True


def _record(version, config):
    return json.dumps({"version": version, "config": config}).encode()


@pytest.fixture
def fake_nats(monkeypatch):
    state = {"calls": [], "js": FakeJetStream(), "clients": []}

    async def fake_connect(**kwargs):
        state["calls"].append(kwargs)
        client = FakeNATS(state["js"])
        state["clients"].append(client)
        return client

    monkeypatch.setattr(nats_store.nats, "connect", fake_connect)
    return state


@pytest.mark.asyncio
async def test_connect_opens_bucket(fake_nats):
    store = NATSKeyValueStore(client_name="svc")
    connection = await store.connect({
        "url": "nats://127.0.0.1:4222",
        "bucket": "settings",
        "options": {"connect_timeout": 2},
    })

    assert fake_nats["calls"] == [{
        "servers": ["nats://127.0.0.1:4222"],
        "name": "svc",
        "connect_timeout": 2,
    }]
    assert fake_nats["js"].buckets == ["settings"]
    assert isinstance(connection, NATSKeyValueConnection)

    await connection.close()
    assert connection.is_closed


@pytest.mark.asyncio
async def test_find_latest_reads_every_key(fake_nats):
    fake_nats["js"].kv.entries = {
        "a": _record("2014-02-01T00:00:55Z", {"port": 73}),
        "b": _record("2014-02-01T00:00:56Z", {"port": 74}),
    }
    connection = await NATSKeyValueStore().connect({"url": "nats://127.0.0.1:4222"})

    record = await connection.find_latest()

    assert record.config == {"port": 74}
    assert fake_nats["js"].buckets == ["config_versions"]


@pytest.mark.asyncio
async def test_empty_bucket_has_no_latest(fake_nats):
    connection = await NATSKeyValueStore().connect({"url": "nats://127.0.0.1:4222"})
    assert await connection.find_latest() is None


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped(fake_nats, memory_logger, log_handler):
    fake_nats["js"].kv.entries = {
        "good": _record(1, {"port": 73}),
        "broken": b"{not json",
        "empty": b"",
        "list": b"[1, 2]",
    }
    connection = await NATSKeyValueStore(logger=memory_logger).connect({"url": "nats://127.0.0.1:4222"})

    record = await connection.find_latest()

    assert record.config == {"port": 73}
    assert "Skipping unreadable configuration record" in log_handler.messages()


@pytest.mark.asyncio
async def test_missing_bucket_closes_client(fake_nats):
    fake_nats["js"].error = RuntimeError("bucket not found")

    with pytest.raises(RuntimeError, match="bucket not found"):
        await NATSKeyValueStore().connect({"url": "nats://127.0.0.1:4222", "bucket": "nope"})

    assert fake_nats["clients"][0].is_closed


@pytest.mark.parametrize("spec", [
    {"url": "http://127.0.0.1:4222"},
    {"bucket": "config_versions"},
])
def test_invalid_spec_raises_remote_store_error(spec):
    with pytest.raises(RemoteStoreError) as exc_info:
        NATSKeyValueStore().parse_spec(spec)
    assert exc_info.value.details["validation_errors"]


@pytest.mark.asyncio
async def test_invalid_spec_is_rejected_before_connecting(fake_nats):
    with pytest.raises(RemoteStoreError):
        await NATSKeyValueStore().connect({"url": "localhost:4222"})
    assert fake_nats["calls"] == []
