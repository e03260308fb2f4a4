"""Tabular export of the order collection."""

from .spreadsheet import (
    COLUMNS,
    CellType,
    SpreadsheetExporter,
    column_types,
    escape_xml,
    export_filename,
    format_number,
    render,
)

__all__ = [
    'COLUMNS',
    'CellType',
    'SpreadsheetExporter',
    'column_types',
    'escape_xml',
    'export_filename',
    'format_number',
    'render',
]
