"""
Order request handling.

OrderManager implements the three storefront contracts (submit, summary,
export) on top of an injected OrderStore and SpreadsheetExporter, and owns
the logging side of the error policy: validation problems are logged as
warnings and passed through verbatim, storage and serialization faults are
logged with full context before being re-raised for a generic response.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..export.spreadsheet import DEFAULT_FILENAME_PREFIX, SpreadsheetExporter, export_filename
from ..logging import get_logger_manager
from .errors import SerializationError, StorageError, ValidationError
from .models import Order
from .store import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of an accepted submission."""

    order: Order
    order_count: int

    @property
    def order_id(self) -> str:
        return self.order.id


@dataclass(frozen=True)
class OrderSummary:
    """Snapshot of the collection, most-recent-last."""

    order_count: int
    orders: List[Order]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'orderCount': self.order_count,
            'orders': [order.to_dict() for order in self.orders],
        }


@dataclass(frozen=True)
class ExportDocument:
    """Rendered workbook plus its attachment filename."""

    filename: str
    content: str
    row_count: int

    media_type = 'application/vnd.ms-excel'


class OrderManager:
    """
    Storefront-facing order operations.

    The store and exporter are injected so the HTTP layer, the CLI and tests
    all share the same single store instance per process.
    """

    def __init__(self, store: OrderStore,
                 exporter: Optional[SpreadsheetExporter] = None,
                 filename_prefix: str = DEFAULT_FILENAME_PREFIX):
        self.store = store
        self.exporter = exporter or SpreadsheetExporter()
        self.filename_prefix = filename_prefix

    def submit_order(self, payload: Mapping[str, Any]) -> SubmitResult:
        """
        Validate and persist a submission.

        Raises:
            ValidationError: If the submission is rejected
            StorageError: If the order could not be persisted
        """
        try:
            order, count = self.store.append(payload)
        except ValidationError as e:
            logger.warning(f"Order submission rejected: {e.message}", extra={'field': e.field})
            raise
        except StorageError as e:
            self._log_failure(e, {'operation': 'submit_order', 'path': e.path})
            raise

        self._log_event('submitted', order.id, {
            'items': len(order.items),
            'total': order.total,
            'order_count': count,
        })
        return SubmitResult(order=order, order_count=count)

    def summary(self) -> OrderSummary:
        """
        Raises:
            StorageError: If the collection could not be loaded
        """
        orders = self._load('summary')
        return OrderSummary(order_count=len(orders), orders=orders)

    def export(self) -> ExportDocument:
        """
        Render every stored order as a spreadsheet attachment.

        Raises:
            StorageError: If the collection could not be loaded
            SerializationError: If the snapshot could not be rendered
        """
        orders = self._load('export')
        try:
            content = self.exporter.render(orders)
        except SerializationError as e:
            self._log_failure(e, {'operation': 'export', 'order_count': len(orders)})
            raise

        row_count = sum(len(order.items) for order in orders)
        document = ExportDocument(
            filename=export_filename(self.filename_prefix),
            content=content,
            row_count=row_count,
        )
        self._log_event('exported', '-', {
            'order_count': len(orders),
            'row_count': row_count,
            'filename': document.filename,
        })
        return document

    def _load(self, operation: str) -> List[Order]:
        try:
            return self.store.load_all()
        except StorageError as e:
            self._log_failure(e, {'operation': operation, 'path': e.path})
            raise

    @staticmethod
    def _log_failure(error: Exception, context: Dict[str, Any]) -> None:
        manager = get_logger_manager()
        if manager is not None:
            manager.log_error_with_context(error, context)
        else:
            logger.error(f"Error occurred: {error}", extra={'context': context}, exc_info=error)

    @staticmethod
    def _log_event(event_type: str, order_id: str, details: Dict[str, Any]) -> None:
        manager = get_logger_manager()
        if manager is not None:
            manager.log_order_event(event_type, order_id, details)
        else:
            logger.info(f"Order event: {event_type}", extra={'order_id': order_id, 'details': details})
