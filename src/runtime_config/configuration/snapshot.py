"""
Published Runtime Snapshot

Writes the merged configuration to a YAML file that other processes read.
Every write goes to a temporary file in the target directory which then
replaces the target atomically, so readers see either the old or the new
document and never a partial one.
"""

import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..exceptions import SnapshotWriteError
from .merge import ConfigTree
from .models import RUNTIME_CONFIG_PATH_ENV

DEFAULT_SNAPSHOT_MODE = 0o640


def default_snapshot_path() -> Path:
    """``$RUNTIME_CONFIG_PATH`` if set, else a unique file in the temp directory."""
    env_path = os.environ.get(RUNTIME_CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path(tempfile.gettempdir()) / f"runtime-config-{uuid.uuid4().hex}.yml"


class RuntimeSnapshotWriter:
    """Atomic writer for the published snapshot of one loader."""

    def __init__(self, path: Optional[Union[str, Path]] = None, mode: int = DEFAULT_SNAPSHOT_MODE):
        self.path = Path(path) if path else default_snapshot_path()
        self.mode = mode

    def write(self, data: Mapping[str, Any]) -> None:
        """
        Atomically replace the snapshot file with ``data``.

        Raises:
            SnapshotWriteError: If the document cannot be written
        """
        content = yaml.safe_dump(dict(data), default_flow_style=False, sort_keys=True)
        tmp_path: Optional[str] = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, self.mode)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise SnapshotWriteError(
                f"Failed to publish runtime configuration: {self.path}",
                config_path=str(self.path),
                validation_errors=[str(e)],
                cause=e,
            )
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def read(self) -> ConfigTree:
        """Read the current snapshot back; a missing file reads as empty."""
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def exists(self) -> bool:
        return self.path.exists()

    def remove(self) -> None:
        if self.path.exists():
            self.path.unlink()
