"""
Centralized Logger Factory for runtime-config

Creates loggers for the loader, the remote connector and the CLI with one
shared configuration, and lets tests reset that configuration.
"""

import threading
from typing import Dict, Optional

from ..configuration.models import LoggingConfiguration
from .logging import (
    ROOT_LOGGER_NAME, ConfigLogger, ConsoleLogHandler, FileLogHandler,
    HumanReadableFormatter, JSONLogFormatter, LogHandler, LogLevel, get_logger,
)


class LoggerFactory:
    """
    Process-wide factory for runtime-config loggers.

    Loggers created before ``configure`` are silent; configuring the factory
    attaches handlers to every logger it has handed out.
    """

    _instance: Optional['LoggerFactory'] = None
    _lock = threading.Lock()

    def __init__(self):
        self._loggers: Dict[str, ConfigLogger] = {}
        self._config: Optional[LoggingConfiguration] = None
        self._config_lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'LoggerFactory':
        """Get singleton instance of LoggerFactory."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = LoggerFactory()
        return cls._instance

    def configure(self, config: LoggingConfiguration) -> None:
        """Apply ``config`` to the root logger and every existing logger."""
        with self._config_lock:
            self._config = config
            self._apply_config_to_logger(get_logger(ROOT_LOGGER_NAME), config)
            for logger in self._loggers.values():
                self._apply_config_to_logger(logger, config)

    def get_logger(self, name: str, level: Optional[LogLevel] = None) -> ConfigLogger:
        """
        Get or create a logger.

        Args:
            name: Dotted logger name, prefixed with ``runtime_config.`` if needed
            level: Optional level override for this logger

        Returns:
            ConfigLogger
        """
        if not name.startswith(ROOT_LOGGER_NAME):
            name = f"{ROOT_LOGGER_NAME}.{name}"

        with self._config_lock:
            logger = self._loggers.get(name)
            if logger is None:
                logger = get_logger(name)
                if self._config is not None:
                    self._apply_config_to_logger(logger, self._config)
                self._loggers[name] = logger
            if level is not None:
                logger.set_level(level)
            return logger

    @staticmethod
    def _build_handlers(config: LoggingConfiguration) -> list[LogHandler]:
        handlers: list[LogHandler] = []
        if config.output in ("console", "both"):
            formatter = JSONLogFormatter() if config.format == "json" else HumanReadableFormatter()
            handlers.append(ConsoleLogHandler(formatter))
        # Files always get JSON
        if config.output in ("file", "both") and config.file_path:
            handlers.append(FileLogHandler(JSONLogFormatter(), config.file_path))
        return handlers

    def _apply_config_to_logger(self, logger: ConfigLogger, config: LoggingConfiguration) -> None:
        logger.handlers.clear()
        logger.set_level(LogLevel(config.level))
        for handler in self._build_handlers(config):
            logger.add_handler(handler)

    def get_configuration(self) -> Optional[LoggingConfiguration]:
        with self._config_lock:
            return self._config

    def is_configured(self) -> bool:
        with self._config_lock:
            return self._config is not None

    def reset(self) -> None:
        """Detach all handlers and forget the configuration."""
        with self._config_lock:
            for logger in self._loggers.values():
                logger.handlers.clear()
            get_logger(ROOT_LOGGER_NAME).handlers.clear()
            self._loggers.clear()
            self._config = None


def configure_logging(config: LoggingConfiguration) -> None:
    """Configure global logging using the factory."""
    LoggerFactory.get_instance().configure(config)


def get_runtime_logger(name: str, level: Optional[LogLevel] = None) -> ConfigLogger:
    """Get a runtime-config logger from the global factory."""
    return LoggerFactory.get_instance().get_logger(name, level)


def is_logging_configured() -> bool:
    return LoggerFactory.get_instance().is_configured()


def reset_logging() -> None:
    """Reset global logging state (useful for testing)."""
    LoggerFactory.get_instance().reset()
