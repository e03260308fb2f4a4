"""
XML Spreadsheet 2003 export of the order collection.

Produces one row per (order, line item) pair. Cell types come from a fixed
column table rather than from the runtime type of the value, so identifiers
that look numeric stay text.
"""

import math
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from ..order.errors import SerializationError
from ..order.models import Order, OrderItem, format_timestamp

DEFAULT_SHEET_NAME = 'Orders'
DEFAULT_EMPTY_MESSAGE = 'No orders yet.'
DEFAULT_FILENAME_PREFIX = 'golf-orders'

_XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}

# Anything outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(r'[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]')


class CellType(str, Enum):
    """Spreadsheet ``ss:Type`` of a data cell."""

    STRING = 'String'
    NUMBER = 'Number'


@dataclass(frozen=True)
class Column:
    header: str
    cell_type: CellType
    value: Callable[[Order, OrderItem], Any]


COLUMNS: Tuple[Column, ...] = (
    Column('OrderID', CellType.STRING, lambda order, item: order.id),
    Column('Date', CellType.STRING, lambda order, item: format_timestamp(order.created_at)),
    Column('CustomerName', CellType.STRING, lambda order, item: order.customer_name),
    Column('Email', CellType.STRING, lambda order, item: order.email),
    Column('Phone', CellType.STRING, lambda order, item: order.phone),
    Column('Product', CellType.STRING, lambda order, item: item.name),
    Column('Quantity', CellType.NUMBER, lambda order, item: item.quantity),
    Column('UnitPrice', CellType.NUMBER, lambda order, item: item.price),
    Column('LineTotal', CellType.NUMBER, lambda order, item: item.line_total),
    Column('OrderTotal', CellType.NUMBER, lambda order, item: order.total),
)


def column_types() -> dict:
    """Mapping of column header to its cell type."""
    return {column.header: column.cell_type for column in COLUMNS}


def escape_xml(value: Any) -> str:
    """Escape the five reserved XML characters and drop characters XML 1.0 forbids."""
    return escape(_INVALID_XML_CHARS.sub('', str(value)), _XML_ENTITIES)


def format_number(value: Any) -> str:
    """
    Render a numeric cell value; integral values drop the trailing ``.0``.

    Raises:
        SerializationError: If the value is not a finite number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SerializationError(f"Expected a number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(f"Expected a finite number, got {value!r}")
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _cell(cell_type: CellType, text: str) -> str:
    return f'<Cell><Data ss:Type="{cell_type.value}">{text}</Data></Cell>'


def _row(cells: List[str]) -> str:
    return f"<Row>{''.join(cells)}</Row>"


class SpreadsheetExporter:
    """Renders order snapshots as an Excel-compatible XML workbook."""

    def __init__(self, sheet_name: str = DEFAULT_SHEET_NAME,
                 empty_message: str = DEFAULT_EMPTY_MESSAGE):
        self.sheet_name = sheet_name
        self.empty_message = empty_message

    def render(self, orders: Sequence[Order]) -> str:
        """
        Render a workbook with one row per order line item.

        Args:
            orders: Snapshot of orders in append order

        Returns:
            str: XML document text

        Raises:
            SerializationError: If an entry is not a renderable order
        """
        rows = [_row([_cell(CellType.STRING, escape_xml(column.header)) for column in COLUMNS])]

        for order in orders:
            if not isinstance(order, Order):
                raise SerializationError(f"Cannot export {type(order).__name__} as an order")
            if not order.items:
                raise SerializationError(f"Order {order.id} has no items")
            for item in order.items:
                rows.append(_row([self._render_cell(column, order, item) for column in COLUMNS]))

        if not orders:
            rows.append(_row([_cell(CellType.STRING, escape_xml(self.empty_message))]))

        body = '\n   '.join(rows)
        return (
            '<?xml version="1.0"?>\n'
            '<Workbook xmlns="urn:schemas-microsoft-com:office:spreadsheet"\n'
            ' xmlns:o="urn:schemas-microsoft-com:office:office"\n'
            ' xmlns:x="urn:schemas-microsoft-com:office:excel"\n'
            ' xmlns:ss="urn:schemas-microsoft-com:office:spreadsheet">\n'
            f' <Worksheet ss:Name="{escape_xml(self.sheet_name)}">\n'
            '  <Table>\n'
            f'   {body}\n'
            '  </Table>\n'
            ' </Worksheet>\n'
            '</Workbook>\n'
        )

    @staticmethod
    def _render_cell(column: Column, order: Order, item: OrderItem) -> str:
        value = column.value(order, item)
        if column.cell_type is CellType.NUMBER:
            return _cell(column.cell_type, format_number(value))
        return _cell(column.cell_type, escape_xml(value))


def render(orders: Sequence[Order]) -> str:
    """Render orders with the default sheet settings."""
    return SpreadsheetExporter().render(orders)


def export_filename(prefix: str = DEFAULT_FILENAME_PREFIX,
                    now: Optional[float] = None) -> str:
    """Attachment filename embedding the generation time in epoch milliseconds."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"{prefix}-{millis}.xls"
