"""
Order data models.

Orders and their line items are immutable once built. Field names on disk
follow the storefront wire format (camelCase), see ``Order.to_dict``.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import ValidationError

Number = Union[int, float]

CUSTOMER_FIELDS = ('customerName', 'email', 'phone')


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp as ISO-8601 with milliseconds and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """
    Parse a stored ISO-8601 timestamp.

    Raises:
        ValueError: If the value is not text or carries no UTC offset
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be text, got {value!r}")
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"Timestamp has no UTC offset: {value!r}")
    return parsed


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


@dataclass(frozen=True)
class OrderItem:
    """One product line within an order."""

    name: str
    quantity: int
    price: Number

    @property
    def line_total(self) -> Number:
        return self.quantity * self.price

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'quantity': self.quantity, 'price': self.price}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'OrderItem':
        return cls(
            name=_stored_text(data, 'name'),
            quantity=_stored_quantity(data['quantity']),
            price=_stored_amount(data, 'price'),
        )

    @classmethod
    def from_payload(cls, entry: Any) -> Optional['OrderItem']:
        """
        Build an item from a submitted line, or ``None`` if the line is malformed.

        A line without a name, or whose quantity is not a positive integer, is
        dropped. A missing or non-numeric price counts as 0; a negative price
        drops the line.
        """
        if not isinstance(entry, Mapping):
            return None

        name = _parse_name(entry.get('name'))
        quantity = _parse_quantity(entry.get('quantity'))
        price = _parse_price(entry.get('price'))
        if name is None or quantity is None or price is None:
            return None

        return cls(name=name, quantity=quantity, price=price)


@dataclass(frozen=True)
class Order:
    """A customer's finalized purchase record."""

    id: str
    created_at: datetime
    customer_name: str
    email: str
    phone: str
    items: Tuple[OrderItem, ...]
    total: Number

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'createdAt': format_timestamp(self.created_at),
            'customerName': self.customer_name,
            'email': self.email,
            'phone': self.phone,
            'items': [item.to_dict() for item in self.items],
            'total': self.total,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Order':
        """
        Decode a stored record.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        items = data['items']
        if not isinstance(items, list) or not items:
            raise ValueError(f"Order {data.get('id')!r} has no items")

        return cls(
            id=_stored_text(data, 'id'),
            created_at=parse_timestamp(data['createdAt']),
            customer_name=_stored_text(data, 'customerName'),
            email=_stored_text(data, 'email'),
            phone=_stored_text(data, 'phone'),
            items=tuple(OrderItem.from_dict(item) for item in items),
            total=_stored_amount(data, 'total'),
        )


@dataclass(frozen=True)
class Submission:
    """A validated order candidate, not yet assigned an identity."""

    customer_name: str
    email: str
    phone: str
    items: Tuple[OrderItem, ...]

    @property
    def total(self) -> Number:
        return sum(item.line_total for item in self.items)

    def finalize(self, order_id: str, created_at: datetime) -> Order:
        return Order(
            id=order_id,
            created_at=created_at,
            customer_name=self.customer_name,
            email=self.email,
            phone=self.phone,
            items=self.items,
            total=self.total,
        )


def validate_submission(candidate: Any) -> Submission:
    """
    Validate a submission payload.

    Args:
        candidate: Decoded request body

    Returns:
        Submission: Customer details plus the line items that survived filtering

    Raises:
        ValidationError: If a customer field is empty or no valid item remains
    """
    if not isinstance(candidate, Mapping):
        raise ValidationError("Order payload must be an object.")

    fields: Dict[str, str] = {}
    for field in CUSTOMER_FIELDS:
        value = candidate.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Missing required field: {field}.", field=field)
        fields[field] = value.strip()

    raw_items = candidate.get('items')
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Order must include at least one item.", field='items')

    items: List[OrderItem] = []
    for entry in raw_items:
        item = OrderItem.from_payload(entry)
        if item is not None:
            items.append(item)

    if not items:
        raise ValidationError("Order must include at least one valid item.", field='items')

    return Submission(
        customer_name=fields['customerName'],
        email=fields['email'],
        phone=fields['phone'],
        items=tuple(items),
    )


# Decoding accepts exactly what Submission.finalize produces and nothing
# that submission parsing would have coerced.

def _stored_text(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Field '{key}' must be non-empty text, got {value!r}")
    return value


def _stored_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Field 'quantity' must be a positive integer, got {value!r}")
    return value


def _stored_amount(data: Mapping[str, Any], key: str) -> Number:
    value = data[key]
    valid = (
        not isinstance(value, bool)
        and isinstance(value, (int, float))
        and math.isfinite(value)
        and value >= 0
    )
    if not valid:
        raise ValueError(f"Field '{key}' must be a non-negative number, got {value!r}")
    return value


def _parse_name(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    name = str(value).strip()
    return name or None


def _parse_quantity(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _parse_price(value: Any) -> Optional[Number]:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        if value.is_integer():
            value = int(value)
    if value < 0:
        return None
    return value
