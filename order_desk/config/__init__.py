"""Configuration management and hot-reload functionality."""

from .manager import (
    DEFAULT_CONFIG,
    ConfigManager,
    ConfigValidationError,
    default_config_path,
)

__all__ = [
    'DEFAULT_CONFIG',
    'ConfigManager',
    'ConfigValidationError',
    'default_config_path',
]
