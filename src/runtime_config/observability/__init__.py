"""
Observability - structured logging for the loader and its collaborators.
"""

from .logging import (
    ConfigLogger, LogLevel, LogFormatter, LogHandler, JSONLogFormatter,
    HumanReadableFormatter, ConsoleLogHandler, FileLogHandler, MemoryLogHandler,
    get_logger, get_loader_id,
)
from .factory import (
    LoggerFactory, configure_logging, get_runtime_logger, is_logging_configured,
    reset_logging,
)

__all__ = [
    "ConfigLogger",
    "LogLevel",
    "LogFormatter",
    "LogHandler",
    "JSONLogFormatter",
    "HumanReadableFormatter",
    "ConsoleLogHandler",
    "FileLogHandler",
    "MemoryLogHandler",
    "get_logger",
    "get_loader_id",
    "LoggerFactory",
    "configure_logging",
    "get_runtime_logger",
    "is_logging_configured",
    "reset_logging",
]
