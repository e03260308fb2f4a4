"""
Pytest configuration and fixtures for the Order Desk test suite.
"""

import logging

import pytest
import yaml

from order_desk.logging import logger as logger_module
from order_desk.logging import remove_installed_handlers
from order_desk.order.manager import OrderManager
from order_desk.order.store import OrderStore


@pytest.fixture
def orders_file(tmp_path):
    """Path of a not-yet-created order file inside a temp directory."""
    return tmp_path / "data" / "orders.json"


@pytest.fixture
def store(orders_file):
    """Fresh OrderStore over an empty collection."""
    return OrderStore(orders_file)


@pytest.fixture
def order_manager(store):
    return OrderManager(store, filename_prefix="golf-orders")


@pytest.fixture
def sample_order_payload():
    """Submission matching the storefront checkout form."""
    return {
        "customerName": "Jane Doe",
        "email": "j@x.com",
        "phone": "555-1111",
        "items": [
            {"name": "Polo", "quantity": 2, "price": 88},
        ],
    }


@pytest.fixture
def write_config(tmp_path):
    """Write a YAML config into the temp directory and return its path."""
    def _write(data, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Keep host environment overrides out of config loading."""
    for key in ("ORDER_DESK_CONFIG", "LOG_LEVEL", "PORT"):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Remove handlers a LoggerManager installed during the test."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    remove_installed_handlers(root_logger)
    root_logger.setLevel(level)
    logger_module._logger_manager = None
