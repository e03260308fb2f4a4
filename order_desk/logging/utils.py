"""
Logging helpers shared by the store and the order manager.
"""

import functools
import time
from typing import Callable, Optional

from .logger import get_logger


def log_execution_time(logger_name: Optional[str] = None):
    """
    Decorator to log function execution time at DEBUG level.

    Failures are logged with their duration and re-raised unchanged.

    Args:
        logger_name: Logger name to use, defaults to function's module
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(logger_name or func.__module__)
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.debug(f"Function {func.__name__} failed", extra={
                    'function': func.__name__,
                    'execution_time_seconds': time.perf_counter() - start_time,
                    'success': False,
                    'error': str(e),
                    'error_type': type(e).__name__
                })
                raise

            logger.debug(f"Function {func.__name__} completed", extra={
                'function': func.__name__,
                'execution_time_seconds': time.perf_counter() - start_time,
                'success': True
            })
            return result

        return wrapper
    return decorator
