"""
Main entry point for Order Desk.

Wires configuration, logging, the order store and the HTTP API together and
runs the server under uvicorn.
"""

import logging
import sys
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI

from .api.server import create_app
from .config.manager import ConfigManager, ConfigValidationError
from .export.spreadsheet import SpreadsheetExporter
from .logging import LoggerManager, get_logger, initialize_logging
from .order.errors import StorageError
from .order.manager import OrderManager
from .order.store import OrderStore


def build_order_manager(config: Dict[str, Any]) -> OrderManager:
    """Construct the process-wide store and the manager wrapping it."""
    export_config = config['export']
    store = OrderStore(config['storage']['orders_file'])
    exporter = SpreadsheetExporter(
        sheet_name=export_config['sheet_name'],
        empty_message=export_config['empty_message'],
    )
    return OrderManager(store, exporter, filename_prefix=export_config['filename_prefix'])


class OrderDeskApplication:
    """
    Order Desk application.

    Owns the config manager, the logging manager and the single OrderStore
    for the process.
    """

    def __init__(self, config_path: Optional[str] = None, enable_hot_reload: bool = True):
        self.config_manager = ConfigManager(config_path, enable_hot_reload=enable_hot_reload)
        self.config: Dict[str, Any] = self.config_manager.load_config()

        self.logger_manager = self._setup_logging()
        self.logger = get_logger(__name__)

        self.order_manager = build_order_manager(self.config)
        self.app: FastAPI = create_app(
            self.order_manager,
            static_dir=self.config['server'].get('static_dir'),
        )

        self.config_manager.add_change_callback(self._on_config_change)
        self.logger.info("OrderDeskApplication initialized", extra={
            'orders_file': str(self.order_manager.store.path),
            'config_path': self.config_manager.config_path,
        })

    def _setup_logging(self) -> LoggerManager:
        logging_config = self.config['logging']
        return initialize_logging(
            log_dir=logging_config['log_dir'],
            log_level=logging_config['log_level'],
            console_output=logging_config['console_output'],
            structured_format=logging_config['structured_format'],
        )

    def _on_config_change(self, config_type: str, new_config: Dict[str, Any]) -> None:
        """Apply settings that can change without a restart."""
        new_level = new_config['logging']['log_level']
        if new_level != self.config['logging']['log_level']:
            self.logger_manager.set_level(new_level)

        for section in ('storage', 'server'):
            if new_config[section] != self.config[section]:
                self.logger.warning(f"Changes to '{section}' settings take effect after restart")

        self.config = new_config

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        server_config = self.config['server']
        host = host or server_config['host']
        port = port or server_config['port']

        self.logger.info(f"Server running at http://{host}:{port}")
        try:
            uvicorn.run(self.app, host=host, port=port, log_config=None)
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        self.config_manager.stop_hot_reload()
        self.logger.info("Order Desk stopped")


def main(config_path: Optional[str] = None) -> int:
    """Start the server. Returns a process exit code."""
    try:
        application = OrderDeskApplication(config_path)
    except ConfigValidationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1
    except StorageError as e:
        logging.getLogger(__name__).critical(f"Cannot open order store: {e.message}")
        return 1

    application.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
