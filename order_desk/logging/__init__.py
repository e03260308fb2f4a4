"""
Logging system for Order Desk.

Structured JSON logging with rotation, plus helpers for timing operations.
"""

from .logger import (
    LoggerManager,
    StructuredFormatter,
    get_logger,
    get_logger_manager,
    initialize_logging,
    remove_installed_handlers,
)
from .utils import log_execution_time

__all__ = [
    'LoggerManager',
    'StructuredFormatter',
    'get_logger',
    'get_logger_manager',
    'initialize_logging',
    'remove_installed_handlers',
    'log_execution_time',
]
