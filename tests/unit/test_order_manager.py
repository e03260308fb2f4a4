"""
OrderManager unit tests.

Checks the submit/summary/export contracts and the logging side of the
error policy.
"""

import logging
import re
from unittest.mock import Mock

import pytest

from order_desk.export.spreadsheet import SpreadsheetExporter
from order_desk.order.errors import SerializationError, StorageError, ValidationError
from order_desk.order.manager import ExportDocument, OrderManager, OrderSummary, SubmitResult
from order_desk.order.store import OrderStore


class TestOrderManager:
    """OrderManager over a real store in a temp directory."""

    def test_submit_order(self, order_manager, sample_order_payload):
        result = order_manager.submit_order(sample_order_payload)

        assert isinstance(result, SubmitResult)
        assert result.order_count == 1
        assert result.order_id == result.order.id
        assert result.order.total == 176

    def test_submit_rejection_is_logged_and_reraised(self, order_manager, caplog):
        with caplog.at_level(logging.WARNING, logger="order_desk.order.manager"):
            with pytest.raises(ValidationError) as exc_info:
                order_manager.submit_order({"customerName": "Jane"})

        assert exc_info.value.field == "email"
        assert any("rejected" in record.getMessage() for record in caplog.records)
        assert order_manager.summary().order_count == 0

    def test_summary_most_recent_last(self, order_manager, sample_order_payload):
        first = order_manager.submit_order(sample_order_payload)
        second = order_manager.submit_order(dict(sample_order_payload, customerName="John"))

        summary = order_manager.summary()
        assert isinstance(summary, OrderSummary)
        assert summary.order_count == 2
        assert [order.id for order in summary.orders] == [first.order_id, second.order_id]

    def test_summary_to_dict(self, order_manager, sample_order_payload):
        result = order_manager.submit_order(sample_order_payload)

        data = order_manager.summary().to_dict()
        assert data["orderCount"] == 1
        assert data["orders"] == [result.order.to_dict()]

    def test_export(self, order_manager, sample_order_payload):
        order_manager.submit_order(sample_order_payload)
        order_manager.submit_order(dict(sample_order_payload, items=[
            {"name": "Cap", "quantity": 1, "price": 25},
            {"name": "Glove", "quantity": 2, "price": 30},
        ]))

        document = order_manager.export()
        assert isinstance(document, ExportDocument)
        assert document.row_count == 3
        assert document.media_type == "application/vnd.ms-excel"
        assert re.fullmatch(r"golf-orders-\d+\.xls", document.filename)
        assert document.content.count("<Row>") == 4

    def test_export_empty(self, order_manager):
        document = order_manager.export()

        assert document.row_count == 0
        assert "No orders yet." in document.content


class TestOrderManagerFailures:
    """Storage and serialization faults are logged with context and re-raised."""

    @pytest.fixture
    def failing_store(self, tmp_path):
        store = Mock(spec=OrderStore)
        error = StorageError("Order file is not valid JSON", path=tmp_path / "orders.json")
        store.append.side_effect = error
        store.load_all.side_effect = error
        return store

    def test_submit_storage_error(self, failing_store, sample_order_payload, caplog):
        manager = OrderManager(failing_store)

        with caplog.at_level(logging.ERROR, logger="order_desk.order.manager"):
            with pytest.raises(StorageError):
                manager.submit_order(sample_order_payload)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.context["operation"] == "submit_order"

    def test_summary_storage_error(self, failing_store):
        with pytest.raises(StorageError):
            OrderManager(failing_store).summary()

    def test_export_serialization_error(self, store, sample_order_payload, caplog):
        exporter = Mock(spec=SpreadsheetExporter)
        exporter.render.side_effect = SerializationError("bad order")
        manager = OrderManager(store, exporter)
        manager.submit_order(sample_order_payload)

        with caplog.at_level(logging.ERROR, logger="order_desk.order.manager"):
            with pytest.raises(SerializationError):
                manager.export()

        assert caplog.records[-1].context["operation"] == "export"
