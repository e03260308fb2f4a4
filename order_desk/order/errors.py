"""Error taxonomy for the order persistence and export subsystem."""

from pathlib import Path
from typing import Optional, Union


class OrderDeskError(Exception):
    """Base class for order subsystem failures."""


class ValidationError(OrderDeskError):
    """Raised when a submission is malformed or incomplete."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class StorageError(OrderDeskError):
    """Raised when the order file cannot be read, written or decoded."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None


class SerializationError(OrderDeskError):
    """Raised when the export path is handed data it cannot render."""
