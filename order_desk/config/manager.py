"""Configuration management with hot-reload functionality."""

import copy
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..export.spreadsheet import DEFAULT_EMPTY_MESSAGE, DEFAULT_FILENAME_PREFIX, DEFAULT_SHEET_NAME

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/default.yaml"
CONFIG_PATH_ENV = "ORDER_DESK_CONFIG"

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'storage': {
        'orders_file': 'data/orders.json',
    },
    'server': {
        'host': '127.0.0.1',
        'port': 3000,
        'static_dir': None,
    },
    'logging': {
        'log_dir': 'logs',
        'log_level': 'INFO',
        'structured_format': True,
        'console_output': True,
    },
    'export': {
        'filename_prefix': DEFAULT_FILENAME_PREFIX,
        'sheet_name': DEFAULT_SHEET_NAME,
        'empty_message': DEFAULT_EMPTY_MESSAGE,
    },
}

SECTION_FIELDS: Dict[str, Dict[str, Any]] = {
    'storage': {
        'orders_file': str,
    },
    'server': {
        'host': str,
        'port': int,
        'static_dir': (str, type(None)),
    },
    'logging': {
        'log_dir': str,
        'log_level': str,
        'structured_format': bool,
        'console_output': bool,
    },
    'export': {
        'filename_prefix': str,
        'sheet_name': str,
        'empty_message': str,
    },
}


@dataclass
class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    message: str
    config_path: Optional[str] = None
    field_path: Optional[str] = None
    expected_type: Optional[str] = None
    actual_value: Optional[Any] = None

    def __str__(self) -> str:
        return self.message


def default_config_path() -> str:
    """Config path from ``ORDER_DESK_CONFIG``, else the bundled default."""
    return os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH


def _type_name(expected_type: Any) -> str:
    if isinstance(expected_type, tuple):
        return ' or '.join(t.__name__ for t in expected_type)
    return expected_type.__name__


class ConfigChangeHandler(FileSystemEventHandler):
    """Handles file system events for configuration hot reload."""

    def __init__(self, config_manager: 'ConfigManager'):
        self.config_manager = config_manager
        self.last_modified: Dict[str, float] = {}

    def on_modified(self, event):
        """Handle file modification events."""
        if event.is_directory:
            return

        file_path = os.fsdecode(event.src_path)
        if not file_path.endswith(('.yaml', '.yml')):
            return

        # Editors often emit several events per save
        current_time = time.time()
        if file_path in self.last_modified:
            if current_time - self.last_modified[file_path] < 1.0:
                return

        self.last_modified[file_path] = current_time

        try:
            self.config_manager._handle_config_change(file_path)
        except Exception as e:
            logger.error(f"Error handling config change for {file_path}: {e}")


class ConfigManager:
    """Manages YAML configuration loading, validation, and hot-reload functionality."""

    def __init__(self, config_path: Optional[str] = None, enable_hot_reload: bool = False):
        """Initialize ConfigManager with optional config path and hot reload.

        Args:
            config_path: Optional path to main config file
            enable_hot_reload: Whether to watch the config file for changes
        """
        self.config_path = config_path or default_config_path()
        self.enable_hot_reload = enable_hot_reload
        self._config: Dict[str, Any] = {}
        self._loaded = False
        self._change_callbacks: List[Callable[[str, Dict[str, Any]], None]] = []

        self._observer: Optional[Observer] = None
        self._file_handler: Optional[ConfigChangeHandler] = None

        if self.enable_hot_reload:
            self._setup_hot_reload()

    def _setup_hot_reload(self):
        """Set up file system watching for hot reload."""
        try:
            config_dir = Path(self.config_path).parent
            if not config_dir.exists():
                logger.warning(f"Config directory not found, hot reload disabled: {config_dir}")
                self.enable_hot_reload = False
                return

            self._observer = Observer()
            self._file_handler = ConfigChangeHandler(self)
            self._observer.schedule(self._file_handler, str(config_dir), recursive=False)
            self._observer.start()
            logger.info("Hot reload enabled for configuration files")

        except Exception as e:
            logger.warning(f"Failed to setup hot reload: {e}")
            self.enable_hot_reload = False

    def _handle_config_change(self, file_path: str):
        """Reload when the main configuration file changed."""
        if Path(file_path).name != Path(self.config_path).name:
            return

        logger.info(f"Configuration file changed: {file_path}")
        old_config = copy.deepcopy(self._config)
        try:
            self.load_config()
        except ConfigValidationError as e:
            logger.error(f"Rejected configuration change, keeping previous settings: {e.message}")
            self._config = old_config
            return

        self._notify_change_callbacks("main", self.get_config())
        logger.info("Main configuration reloaded successfully")

    def add_change_callback(self, callback: Callable[[str, Dict[str, Any]], None]):
        """Add callback to be notified of configuration changes.

        Args:
            callback: Function to call when config changes.
                     Receives (config_type, new_config) as arguments.
        """
        self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[str, Dict[str, Any]], None]):
        """Remove a change callback."""
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def _notify_change_callbacks(self, config_type: str, new_config: Dict[str, Any]):
        for callback in self._change_callbacks:
            try:
                callback(config_type, new_config)
            except Exception as e:
                logger.error(f"Error in config change callback: {e}")

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Sections missing from the file fall back to ``DEFAULT_CONFIG``;
        ``LOG_LEVEL`` and ``PORT`` environment variables override the file.

        Args:
            config_path: Optional path to config file. Uses instance path if not provided.

        Returns:
            Dictionary containing loaded configuration

        Raises:
            ConfigValidationError: If config file is invalid or missing
        """
        path = config_path or self.config_path

        try:
            config_file = Path(path)
            if not config_file.exists():
                raise ConfigValidationError(
                    f"Configuration file not found: {path}",
                    config_path=path
                )

            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)

            if config_data is None:
                config_data = {}

            if not isinstance(config_data, dict):
                raise ConfigValidationError(
                    f"Configuration must be a dictionary, got {type(config_data).__name__}",
                    config_path=path,
                    expected_type="dict",
                    actual_value=type(config_data).__name__
                )

            merged = self._merge_defaults(config_data, path)
            self._apply_environment(merged, path)
            self._validate_sections(merged, path)

            self._config = merged
            self._loaded = True

            logger.info(f"Successfully loaded configuration from {path}")
            return copy.deepcopy(merged)

        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Invalid YAML syntax in {path}: {str(e)}",
                config_path=path
            )
        except ConfigValidationError:
            raise
        except Exception as e:
            raise ConfigValidationError(
                f"Failed to load configuration from {path}: {str(e)}",
                config_path=path
            )

    def _merge_defaults(self, config_data: Dict[str, Any], path: str) -> Dict[str, Any]:
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in config_data.items():
            if section not in SECTION_FIELDS:
                logger.warning(f"Ignoring unknown configuration section '{section}' in {path}")
                continue
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigValidationError(
                    f"Configuration section '{section}' must be a dictionary in {path}",
                    config_path=path,
                    field_path=section,
                    expected_type="dict",
                    actual_value=type(values).__name__
                )
            merged[section].update(values)
        return merged

    def _apply_environment(self, config: Dict[str, Any], path: str) -> None:
        log_level = os.getenv('LOG_LEVEL')
        if log_level:
            config['logging']['log_level'] = log_level.upper()

        port = os.getenv('PORT')
        if port:
            try:
                config['server']['port'] = int(port)
            except ValueError:
                raise ConfigValidationError(
                    f"PORT environment variable must be an integer, got {port!r}",
                    config_path=path,
                    field_path="server.port",
                    expected_type="int",
                    actual_value=port
                )

    def _validate_sections(self, config: Dict[str, Any], path: str) -> None:
        """Validate field types, then field values."""
        for section, fields in SECTION_FIELDS.items():
            section_config = config[section]
            for field, expected_type in fields.items():
                value = section_config.get(field)
                # bool is an int subclass; a port of ``true`` is still wrong
                wrong_bool = isinstance(value, bool) and expected_type is int
                if wrong_bool or not isinstance(value, expected_type):
                    raise ConfigValidationError(
                        f"{section.capitalize()} config field '{field}' must be of type "
                        f"{_type_name(expected_type)} in {path}",
                        config_path=path,
                        field_path=f"{section}.{field}",
                        expected_type=_type_name(expected_type),
                        actual_value=type(value).__name__
                    )

        for section, field in (('storage', 'orders_file'), ('export', 'filename_prefix')):
            if not config[section][field].strip():
                raise ConfigValidationError(
                    f"{section.capitalize()} config field '{field}' must not be empty in {path}",
                    config_path=path,
                    field_path=f"{section}.{field}",
                    expected_type="non-empty str",
                    actual_value=config[section][field]
                )

        port = config['server']['port']
        if not (1 <= port <= 65535):
            raise ConfigValidationError(
                f"Server config 'port' must be between 1 and 65535 in {path}",
                config_path=path,
                field_path="server.port",
                expected_type="int between 1 and 65535",
                actual_value=port
            )

        log_level = config['logging']['log_level'].upper()
        if log_level not in LOG_LEVELS:
            raise ConfigValidationError(
                f"Logging config 'log_level' must be one of {list(LOG_LEVELS)} in {path}",
                config_path=path,
                field_path="logging.log_level",
                expected_type=f"one of {list(LOG_LEVELS)}",
                actual_value=config['logging']['log_level']
            )
        config['logging']['log_level'] = log_level

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration. Loads if not already loaded."""
        if not self._loaded:
            self.load_config()
        return copy.deepcopy(self._config)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get specific configuration section."""
        config = self.get_config()
        if section not in config:
            raise ConfigValidationError(f"Configuration section '{section}' not found")
        return config[section]

    def validate_config_file(self, config_path: str) -> bool:
        """Validate a configuration file without loading it permanently.

        Returns:
            True if valid, False otherwise
        """
        try:
            ConfigManager(config_path).load_config()
            return True
        except ConfigValidationError:
            return False

    def reload_config(self) -> bool:
        """Manually reload configuration.

        Returns:
            True if reload successful, False otherwise
        """
        try:
            self.load_config()
        except ConfigValidationError as e:
            logger.error(f"Failed to reload configuration: {e.message}")
            return False
        self._notify_change_callbacks("main", self.get_config())
        return True

    def stop_hot_reload(self):
        """Stop hot reload file watching."""
        if self._observer and self._observer.is_alive():
            self._observer.stop()
            self._observer.join()
            logger.info("Hot reload stopped")

    def __del__(self):
        """Cleanup when object is destroyed."""
        if hasattr(self, '_observer') and self._observer and self._observer.is_alive():
            self._observer.stop()
            self._observer.join()
