"""Logging utilities for the vectorsearch package.

This module provides the logger factory used by every vectorsearch module and
the bridge that forwards the Qdrant client's log records into the host
application's log sink.

Key Features:
    - Singleton-style initialization prevents duplicate log handlers
    - Environment variable-based configuration via LOG_LEVEL
    - Consistent formatting across all modules
    - Backend log bridge preserving record severity

Usage:
    >>> from vectorsearch.utils.logging import LoggerFactory
    >>> logger = LoggerFactory(__name__).get_logger()
    >>> logger.info("Running similarity search")

    # Forward qdrant_client / httpx records to an application logger
    >>> bridge = BackendLogBridge(logging.getLogger("myapp.vector"))
    >>> bridge.attach()
"""

import logging
import os
import threading
from typing import Iterable


#: Loggers used by qdrant-client and its HTTP transport.
BACKEND_LOGGER_NAMES: tuple[str, ...] = ("qdrant_client", "httpx")


class LoggerFactory:
    """Factory class to set up and configure a logger with customizable settings.

    Logging is configured only once during the application's lifetime; later
    factories just hand out named loggers.

    Attributes:
        logger_name (str): The name of the logger to create.
        log_level (int): The logging level (e.g., logging.INFO, logging.DEBUG).
        log_format (str): The format for log messages.
        logger (logging.Logger): The configured logger instance.
    """

    _is_logger_initialized: bool = False

    def __init__(
        self,
        logger_name: str,
        log_level: int = logging.INFO,
        log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    ) -> None:
        """Initialize the LoggerFactory instance with the given configuration.

        Args:
            logger_name (str): The name of the logger to create.
            log_level (int, optional): The logging level (default is logging.INFO).
            log_format (str, optional): The format for log messages.
        """
        self.logger_name = logger_name
        self.log_level = log_level
        self.log_format = log_format
        self.logger = self._initialize_logger()

    def _initialize_logger(self) -> logging.Logger:
        """Configure the root handler once and return the named logger."""
        if not LoggerFactory._is_logger_initialized:
            logging.basicConfig(level=self.log_level, format=self.log_format)
            LoggerFactory._is_logger_initialized = True

        return logging.getLogger(self.logger_name)

    def get_logger(self) -> logging.Logger:
        """Return the configured logger instance."""
        return self.logger

    @staticmethod
    def configure_from_env(
        logger_name: str, env_var: str = "LOG_LEVEL"
    ) -> "LoggerFactory":
        """Configure the logger based on an environment variable.

        Args:
            logger_name (str): The name of the logger to create.
            env_var (str, optional): The environment variable for log level.

        Returns:
            LoggerFactory: A LoggerFactory instance with the configured log level.
        """
        log_level_str = os.getenv(env_var, "INFO").upper()
        # Default to INFO if invalid level
        log_level = getattr(logging, log_level_str, logging.INFO)
        return LoggerFactory(logger_name, log_level=log_level)


class BackendLogBridge(logging.Handler):
    """Forward backend client log records to a host logger.

    The bridge is attached as a handler on the backend loggers and re-emits
    every record on ``sink`` with the record's own level, so a WARNING from
    qdrant-client stays a WARNING in the host application. While any bridge
    is attached, the backend loggers stop propagating to the root logger to
    avoid writing each record twice. Several bridges may be attached at once
    (one per connected store); the original ``propagate`` flag is saved by the
    first attach and restored by the last detach.

    Attributes:
        sink: Host logger receiving the forwarded records.
        source_names: Names of the backend loggers the bridge listens on.
    """

    # logger name -> (propagate flag before any bridge, attached bridge count)
    _shared_state: dict[str, tuple[bool, int]] = {}
    _shared_lock = threading.Lock()

    def __init__(
        self,
        sink: logging.Logger,
        source_names: Iterable[str] = BACKEND_LOGGER_NAMES,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level=level)
        self.sink = sink
        self.source_names = tuple(source_names)
        self._attached = False

    @property
    def attached(self) -> bool:
        """Whether the bridge is currently installed on its source loggers."""
        return self._attached

    def attach(self) -> None:
        """Install the bridge on every source logger. Idempotent."""
        with BackendLogBridge._shared_lock:
            if self._attached:
                return
            for name in self.source_names:
                source = logging.getLogger(name)
                propagate, count = BackendLogBridge._shared_state.get(
                    name, (source.propagate, 0)
                )
                BackendLogBridge._shared_state[name] = (propagate, count + 1)
                source.addHandler(self)
                source.propagate = False
            self._attached = True

    def detach(self) -> None:
        """Remove the bridge; the last bridge out restores propagation."""
        with BackendLogBridge._shared_lock:
            if not self._attached:
                return
            for name in self.source_names:
                source = logging.getLogger(name)
                source.removeHandler(self)
                propagate, count = BackendLogBridge._shared_state.pop(name, (True, 1))
                if count > 1:
                    BackendLogBridge._shared_state[name] = (propagate, count - 1)
                else:
                    source.propagate = propagate
            self._attached = False

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink.log(
                record.levelno,
                "[%s] %s",
                record.name,
                record.getMessage(),
                exc_info=record.exc_info,
            )
        except Exception:
            self.handleError(record)

