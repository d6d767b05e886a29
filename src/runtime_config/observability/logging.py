"""
Structured Logging for runtime-config

Records are plain dictionaries carrying the logger name, level, message,
the loader that emitted them and any structured ``extra`` fields. Handlers
turn them into JSON lines or aligned human-readable text.

A logger without handlers drops every record, so the loader and the remote
connector work unchanged when logging has never been configured.
"""

import json
import sys
import traceback
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

# Identifies the loader whose work produced a record
loader_id_var: ContextVar[Optional[str]] = ContextVar('loader_id', default=None)


class LogLevel(Enum):
    """Log levels understood by the runtime-config loggers"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
    LogLevel.CRITICAL: 4,
}


class LogFormatter(ABC):
    """Abstract base class for log formatters"""

    @abstractmethod
    def format(self, record: Dict[str, Any]) -> str:
        """Format a log record into a string"""
        pass


class JSONLogFormatter(LogFormatter):
    """One JSON object per line"""

    def format(self, record: Dict[str, Any]) -> str:
        return json.dumps(record, default=str, ensure_ascii=False)


class HumanReadableFormatter(LogFormatter):
    """Aligned columns for terminals"""

    def format(self, record: Dict[str, Any]) -> str:
        timestamp = record.get('timestamp', '')
        if 'T' in timestamp:
            date_part, time_part = timestamp.split('T', 1)
            timestamp = f"{date_part} {time_part.split('.')[0].rstrip('Z')}"

        short_logger = record.get('logger', 'unknown').split('.')[-1]
        if len(short_logger) > 20:
            short_logger = short_logger[:17] + "..."

        line = f"[{timestamp}] {record.get('level', 'INFO'):<8} [{short_logger:<20}] {record.get('message', '')}"

        loader_id = record.get('loader_id')
        if loader_id:
            line += f" (loader={loader_id[:8]})"

        extra = record.get('extra')
        if extra:
            for key, value in extra.items():
                text = str(value)
                if len(text) > 100:
                    text = text[:97] + "..."
                line += f"\n    {key}: {text}"

        return line


class LogHandler(ABC):
    """Abstract base class for log handlers"""

    def __init__(self, formatter: LogFormatter):
        self.formatter = formatter

    @abstractmethod
    def emit(self, record: Dict[str, Any]) -> None:
        """Emit a log record"""
        pass


class ConsoleLogHandler(LogHandler):
    """Writes records to a text stream (stderr by default)"""

    def __init__(self, formatter: LogFormatter, stream: Optional[TextIO] = None):
        super().__init__(formatter)
        self.stream = stream

    def emit(self, record: Dict[str, Any]) -> None:
        stream = self.stream or sys.stderr
        stream.write(self.formatter.format(record) + '\n')
        stream.flush()


class FileLogHandler(LogHandler):
    """Appends records to a file"""

    def __init__(self, formatter: LogFormatter, file_path: Union[str, Path]):
        super().__init__(formatter)
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: Dict[str, Any]) -> None:
        with open(self.file_path, 'a', encoding='utf-8') as f:
            f.write(self.formatter.format(record) + '\n')


class MemoryLogHandler(LogHandler):
    """Keeps records in a list; used by tests and the CLI's quiet mode."""

    def __init__(self, formatter: Optional[LogFormatter] = None):
        super().__init__(formatter or JSONLogFormatter())
        self.records: list[Dict[str, Any]] = []

    def emit(self, record: Dict[str, Any]) -> None:
        self.records.append(record)

    def messages(self, level: Optional[LogLevel] = None) -> list[str]:
        return [
            r['message'] for r in self.records
            if level is None or r['level'] == level.value
        ]


class ConfigLogger:
    """
    Structured logger used throughout runtime-config.

    Features:
    - Dictionary records with optional structured ``extra`` fields
    - Loader context tagging via a context variable
    - Multiple output handlers
    - Best effort: a failing handler never breaks the caller
    """

    def __init__(self, name: str, level: LogLevel = LogLevel.INFO):
        self.name = name
        self.level = level
        self.handlers: list[LogHandler] = []

    def add_handler(self, handler: LogHandler) -> None:
        self.handlers.append(handler)

    def remove_handler(self, handler: LogHandler) -> None:
        if handler in self.handlers:
            self.handlers.remove(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        return bool(self.handlers) and _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.level]

    def _create_log_record(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': level.value,
            'logger': self.name,
            'message': message,
            'loader_id': loader_id_var.get(),
        }
        if extra:
            record['extra'] = extra
        return {k: v for k, v in record.items() if v is not None}

    def _log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        if not self.is_enabled_for(level):
            return

        record = self._create_log_record(level, message, extra)
        for handler in self.handlers:
            try:
                handler.emit(record)
            except Exception as e:
                sys.stderr.write(f"Logging handler failed: {e}\n")

    @staticmethod
    def _with_exception(extra: Optional[Dict[str, Any]], exc_info: Optional[BaseException]) -> Optional[Dict[str, Any]]:
        if exc_info is None:
            return extra
        extra = dict(extra or {})
        extra['exception'] = {
            'type': type(exc_info).__name__,
            'message': str(exc_info),
            'module': type(exc_info).__module__,
            'traceback': traceback.format_exception(type(exc_info), exc_info, exc_info.__traceback__),
        }
        return extra

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: Optional[BaseException] = None) -> None:
        self._log(LogLevel.ERROR, message, self._with_exception(extra, exc_info))

    def critical(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: Optional[BaseException] = None) -> None:
        self._log(LogLevel.CRITICAL, message, self._with_exception(extra, exc_info))

    @contextmanager
    def loader_context(self, loader_id: Optional[str] = None):
        """Tag every record emitted inside the block with ``loader_id``."""
        if loader_id is None:
            loader_id = uuid.uuid4().hex
        token = loader_id_var.set(loader_id)
        try:
            yield loader_id
        finally:
            loader_id_var.reset(token)


# Global logger registry
_loggers: Dict[str, ConfigLogger] = {}

ROOT_LOGGER_NAME = "runtime_config"


def get_logger(name: str, level: LogLevel = LogLevel.INFO) -> ConfigLogger:
    """Get or create a logger instance"""
    if name not in _loggers:
        logger = ConfigLogger(name, level)

        # New loggers inherit whatever the root logger was configured with
        root = _loggers.get(ROOT_LOGGER_NAME)
        if root is not None and name != ROOT_LOGGER_NAME:
            logger.set_level(root.level)
            for handler in root.handlers:
                logger.add_handler(handler)

        _loggers[name] = logger
    return _loggers[name]


def clear_loggers() -> None:
    """Forget every logger (tests)."""
    _loggers.clear()


def get_loader_id() -> Optional[str]:
    """Get the loader id bound to the current context"""
    return loader_id_var.get()
