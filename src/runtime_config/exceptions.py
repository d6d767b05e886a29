"""
Runtime Configuration Exceptions

Error taxonomy shared by the loader, the source readers and the remote
store connector.
"""

from typing import Any, Dict, List, Optional


class RuntimeConfigError(Exception):
    """Base exception for all runtime configuration errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for structured logs."""
        data = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data


class ConfigurationError(RuntimeConfigError):
    """Raised when a configuration source cannot be turned into a tree."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", None) or {}
        if config_path is not None:
            details["config_path"] = config_path
        if validation_errors:
            details["validation_errors"] = list(validation_errors)
        super().__init__(message, details=details, **kwargs)
        self.config_path = config_path
        self.validation_errors = list(validation_errors or [])


class ConfigurationParseError(ConfigurationError):
    """A configuration file exists but is not a valid YAML mapping."""

    def __init__(self, message: str, config_path: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "CONFIG_PARSE_ERROR")
        super().__init__(message, config_path=config_path, **kwargs)


class SnapshotWriteError(ConfigurationError):
    """The merged snapshot could not be published to disk."""

    def __init__(self, message: str, config_path: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "SNAPSHOT_WRITE_ERROR")
        super().__init__(message, config_path=config_path, **kwargs)


class RemoteStoreError(RuntimeConfigError):
    """Connecting to or querying the remote configuration store failed."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "REMOTE_STORE_ERROR")
        details = kwargs.pop("details", None) or {}
        if url is not None:
            details["url"] = url
        super().__init__(message, details=details, **kwargs)
        self.url = url
