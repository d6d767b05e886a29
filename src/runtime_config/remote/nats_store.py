"""
NATS JetStream key/value driver for the remote configuration store.

Each key of the bucket holds one JSON record::

    {"version": "2014-02-01T00:00:55+00:00", "config": {"port": 73}}

The newest record by ``version`` is the authoritative one.
"""

import json
from typing import Any, Dict, List, Mapping, Optional

import nats
from nats.aio.client import Client as NATS
from nats.js.errors import NoKeysError
from pydantic import ValidationError

from ..configuration.models import RemoteConnectionSpec
from ..exceptions import RemoteStoreError
from ..observability.factory import get_runtime_logger
from ..observability.logging import ConfigLogger
from .store import ConfigVersion, RemoteConnection, RemoteStore, latest_version


class NATSKeyValueConnection(RemoteConnection):
    """Connection bound to one key/value bucket."""

    def __init__(self, nc: NATS, kv: Any, bucket: str, logger: ConfigLogger):
        self.nc = nc
        self.kv = kv
        self.bucket = bucket
        self.logger = logger

    async def _read_records(self) -> List[ConfigVersion]:
        try:
            keys = await self.kv.keys()
        except NoKeysError:
            return []

        records = []
        for key in keys:
            entry = await self.kv.get(key)
            if entry is None or not entry.value:
                continue
            try:
                document = json.loads(entry.value)
            except (TypeError, ValueError) as e:
                self.logger.warning("Skipping unreadable configuration record", extra={
                    "bucket": self.bucket,
                    "key": key,
                    "error": str(e),
                })
                continue
            if isinstance(document, dict):
                records.append(ConfigVersion.from_document(document))
        return records

    async def find_latest(self) -> Optional[ConfigVersion]:
        return latest_version(await self._read_records())

    async def close(self) -> None:
        if not self.nc.is_closed:
            await self.nc.close()

    @property
    def is_closed(self) -> bool:
        return self.nc.is_closed


class NATSKeyValueStore(RemoteStore):
    """
    Opens NATS connections described by the reserved ``remote`` block::

        remote:
          url: nats://localhost:4222
          bucket: config_versions
          options:
            connect_timeout: 2
    """

    def __init__(self, client_name: str = "runtime-config", logger: Optional[ConfigLogger] = None):
        self.client_name = client_name
        self.logger = logger or get_runtime_logger("remote.nats")

    def parse_spec(self, spec: Mapping[str, Any]) -> RemoteConnectionSpec:
        try:
            return RemoteConnectionSpec(**dict(spec))
        except ValidationError as e:
            raise RemoteStoreError(
                "Invalid remote configuration store settings",
                url=spec.get("url") if isinstance(spec, Mapping) else None,
                details={"validation_errors": [err["msg"] for err in e.errors()]},
                cause=e,
            ) from e

    async def connect(self, spec: Mapping[str, Any]) -> RemoteConnection:
        parsed = self.parse_spec(spec)
        options: Dict[str, Any] = {"name": self.client_name}
        options.update(parsed.options)

        nc = await nats.connect(servers=[parsed.url], **options)
        try:
            js = nc.jetstream()
            kv = await js.key_value(parsed.bucket)
        except Exception:
            await nc.close()
            raise

        self.logger.debug("Opened NATS key/value bucket", extra={
            "url": parsed.url,
            "bucket": parsed.bucket,
        })
        return NATSKeyValueConnection(nc, kv, parsed.bucket, self.logger)
