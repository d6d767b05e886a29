"""
Configuration Models

Pydantic models for the loader's own settings, the logging setup and the
remote connection block found inside the merged configuration.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "RUNTIME_CONFIG_"
RUNTIME_CONFIG_PATH_ENV = "RUNTIME_CONFIG_PATH"


class LoggingConfiguration(BaseModel):
    """Logging setup consumed by the logger factory."""

    level: str = "INFO"
    format: Literal["text", "json"] = "text"
    output: Literal["console", "file", "both"] = "console"
    file_path: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_file_output(self) -> "LoggingConfiguration":
        if self.output in ("file", "both") and not self.file_path:
            raise ValueError("file_path is required when logging to a file")
        return self


class RemoteConnectionSpec(BaseModel):
    """Connection block for the NATS key/value driver."""

    url: str
    bucket: str = "config_versions"
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("nats://", "tls://", "ws://", "wss://")):
            raise ValueError(f"Invalid NATS server URL: {v}")
        return v


class LoaderSettings(BaseModel):
    """
    Tunables of a ConfigurationLoader.

    Durations are in seconds. By default the remote store is polled every
    500ms and reconnects back off from 100ms up to 30s.
    """

    poll_interval: float = Field(default=0.5, gt=0)
    backoff_initial_delay: float = Field(default=0.1, gt=0)
    backoff_max_delay: float = Field(default=30.0, gt=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    backoff_jitter: float = Field(default=0.0, ge=0.0, le=1.0)
    connect_timeout: Optional[float] = Field(default=10.0, gt=0)
    remote_key: str = "remote"
    snapshot_path: Optional[str] = None
    write_snapshot: bool = True
    snapshot_mode: int = 0o640

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> "LoaderSettings":
        if self.backoff_max_delay < self.backoff_initial_delay:
            raise ValueError("backoff_max_delay must be >= backoff_initial_delay")
        return self

    @classmethod
    def from_environment(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> "LoaderSettings":
        """
        Build settings from ``RUNTIME_CONFIG_*`` environment variables.

        Args:
            env_file: Optional ``.env`` file loaded (without overriding the
                existing environment) before the variables are read
            **overrides: Explicit values that win over the environment

        Returns:
            LoaderSettings
        """
        if env_file is not None:
            load_dotenv(dotenv_path=env_file, override=False)

        values: Dict[str, Any] = {}
        env_map = {
            RUNTIME_CONFIG_PATH_ENV: "snapshot_path",
            f"{ENV_PREFIX}POLL_INTERVAL": "poll_interval",
            f"{ENV_PREFIX}BACKOFF_INITIAL_DELAY": "backoff_initial_delay",
            f"{ENV_PREFIX}BACKOFF_MAX_DELAY": "backoff_max_delay",
            f"{ENV_PREFIX}CONNECT_TIMEOUT": "connect_timeout",
            f"{ENV_PREFIX}REMOTE_KEY": "remote_key",
        }
        for env_name, field_name in env_map.items():
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value

        values.update(overrides)
        return cls(**values)
