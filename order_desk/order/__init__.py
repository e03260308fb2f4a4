"""
Order models and durable storage.

Request handling lives in ``order_desk.order.manager``; it depends on the
export package, which in turn depends on the models here.
"""

from .errors import OrderDeskError, SerializationError, StorageError, ValidationError
from .models import Order, OrderItem, Submission, validate_submission
from .store import OrderStore

__all__ = [
    'Order',
    'OrderDeskError',
    'OrderItem',
    'OrderStore',
    'SerializationError',
    'StorageError',
    'Submission',
    'ValidationError',
    'validate_submission',
]
