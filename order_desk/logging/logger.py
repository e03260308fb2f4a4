"""
Structured logging with size-based rotation.

Every record is written as one JSON object per line so operators can grep or
ship the files; errors are mirrored into a separate ``errors.log``.
"""

import json
import logging
import logging.handlers
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
])

_INSTALLED_MARKER = '_order_desk_handler'


def remove_installed_handlers(root_logger: Optional[logging.Logger] = None) -> None:
    """Detach and close handlers installed by any LoggerManager; others are left alone."""
    root_logger = root_logger or logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _INSTALLED_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging with JSON output."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                k: v for k, v in record.__dict__.items()
                if k not in _RESERVED_ATTRS
            }
            if extra_fields:
                log_data['extra'] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerManager:
    """
    Centralized logging manager with rotation and retention policies.

    Installs on the root logger a rotating application log, a rotating
    error log, and optionally a console stream.
    """

    def __init__(self,
                 log_dir: str = "logs",
                 log_level: str = "INFO",
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 30,
                 console_output: bool = True,
                 structured_format: bool = True):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            max_file_size: Maximum size per log file in bytes
            backup_count: Number of rotated files to keep
            console_output: Whether to output logs to console
            structured_format: Whether to use structured JSON format
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_output = console_output
        self.structured_format = structured_format

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self._handlers: list = []
        self._setup_logging()

        self._loggers: Dict[str, logging.Logger] = {}

        self.logger = self.get_logger(__name__)
        self.logger.info("LoggerManager initialized", extra={
            'log_dir': str(self.log_dir),
            'log_level': log_level,
            'max_file_size': max_file_size,
            'backup_count': backup_count
        })

    def _setup_logging(self) -> None:
        """Setup logging configuration with handlers and formatters."""
        root_logger = logging.getLogger()
        remove_installed_handlers(root_logger)

        root_logger.setLevel(self.log_level)

        if self.structured_format:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "order_desk.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(self.log_level)
        file_handler.setFormatter(formatter)
        self._install(root_logger, file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "errors.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        self._install(root_logger, error_handler)

        if self.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.log_level)
            console_handler.setFormatter(formatter)
            self._install(root_logger, console_handler)

    def _install(self, root_logger: logging.Logger, handler: logging.Handler) -> None:
        setattr(handler, _INSTALLED_MARKER, True)
        root_logger.addHandler(handler)
        self._handlers.append(handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger instance.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Configured logger instance
        """
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)

        return self._loggers[name]

    def set_level(self, log_level: str) -> None:
        """Change the minimum level of the root logger and its non-error handlers."""
        level = getattr(logging, log_level.upper())
        self.log_level = level
        logging.getLogger().setLevel(level)
        for handler in self._handlers:
            if handler.level != logging.ERROR:
                handler.setLevel(level)
        self.logger.info("Log level changed", extra={'log_level': log_level.upper()})

    def log_order_event(self, event_type: str, order_id: str,
                        details: Dict[str, Any]) -> None:
        """
        Log order lifecycle events.

        Args:
            event_type: Type of order event (submitted, exported, ...)
            order_id: Order identifier, or '-' for collection-wide events
            details: Event details
        """
        self.logger.info(f"Order event: {event_type}", extra={
            'event_type': 'order',
            'order_event': event_type,
            'order_id': order_id,
            'details': details,
        })

    def log_error_with_context(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Log errors with full context and stack trace.

        Args:
            error: Exception instance
            context: Additional context information
        """
        self.logger.error(f"Error occurred: {str(error)}", extra={
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
        }, exc_info=error)

    def shutdown(self) -> None:
        """Detach and close the handlers this manager installed."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()


# Global logger manager instance
_logger_manager: Optional[LoggerManager] = None


def initialize_logging(log_dir: str = "logs",
                       log_level: str = "INFO",
                       **kwargs) -> LoggerManager:
    """
    Initialize global logging system.

    Args:
        log_dir: Directory for log files
        log_level: Minimum log level
        **kwargs: Additional LoggerManager arguments

    Returns:
        LoggerManager instance
    """
    global _logger_manager
    if _logger_manager is not None:
        _logger_manager.shutdown()
    _logger_manager = LoggerManager(log_dir=log_dir, log_level=log_level, **kwargs)
    return _logger_manager


def get_logger_manager() -> Optional[LoggerManager]:
    return _logger_manager


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, from the global manager when one has been initialized.

    Unlike ``initialize_logging`` this never installs handlers, so library
    code can call it at import time.
    """
    if _logger_manager is None:
        return logging.getLogger(name)
    return _logger_manager.get_logger(name)
