"""
Durable, file-based order store.

The whole collection lives in one JSON array. Appends are read-modify-write
under a per-store lock; every write lands in a temporary sibling file that is
fsynced and then atomically swapped onto the canonical path, so readers see
either the previous or the next collection and never a torn file.
"""

import calendar
import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from ..logging import log_execution_time
from .errors import StorageError
from .models import Order, utc_now, validate_submission

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = 'ORD-'


class OrderStore:
    """
    Append-only order collection backed by a single JSON file.

    One instance should own a given path for the lifetime of the process;
    the append lock is per instance.
    """

    def __init__(self, path: Union[str, Path],
                 clock: Callable[[], datetime] = utc_now):
        """
        Open the store, creating an empty collection if the file is absent.

        Args:
            path: Location of the canonical order file
            clock: Source of creation timestamps (UTC, millisecond precision)

        Raises:
            StorageError: If the file or its directory cannot be created
        """
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create order directory: {e}", path=self.path.parent) from e

        if not self.path.exists():
            self._write([])
            logger.info(f"Initialized empty order store at {self.path}")

    @log_execution_time()
    def append(self, candidate: Mapping[str, Any]) -> Tuple[Order, int]:
        """
        Validate a submission and durably append it.

        Args:
            candidate: Submission payload (customerName, email, phone, items)

        Returns:
            Tuple[Order, int]: The persisted order and the new collection size

        Raises:
            ValidationError: If the submission is rejected
            StorageError: If the collection cannot be read or written
        """
        submission = validate_submission(candidate)

        with self._lock:
            records = self._read()
            self._decode(records)
            created_at = self._clock()
            order_id = self._next_id(created_at, records)
            order = submission.finalize(order_id, created_at)

            records.append(order.to_dict())
            self._write(records)

        logger.info(f"Order {order.id} appended ({len(order.items)} items, total={order.total})")
        return order, len(records)

    @log_execution_time()
    def load_all(self) -> List[Order]:
        """
        Return every persisted order in append order.

        Raises:
            StorageError: If the file is unreadable or does not decode to orders
        """
        return self._decode(self._read())

    def count(self) -> int:
        return len(self._read())

    def _decode(self, records: List[Any]) -> List[Order]:
        orders = []
        for index, record in enumerate(records):
            try:
                orders.append(Order.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise StorageError(
                    f"Corrupted order record at index {index}: {e}", path=self.path
                ) from e
        return orders

    def _read(self) -> List[Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StorageError("Order file is missing", path=self.path) from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Order file is not valid JSON: {e}", path=self.path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read order file: {e}", path=self.path) from e

        if not isinstance(data, list):
            raise StorageError(
                f"Order file must hold a list, got {type(data).__name__}", path=self.path
            )
        return data

    def _write(self, records: List[Any]) -> None:
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix='.tmp', dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.write('\n')
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot write order file: {e}", path=self.path) from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_path}")

    @staticmethod
    def _next_id(created_at: datetime, records: List[Any]) -> str:
        """Time-derived identifier, bumped past any identifier already taken."""
        millis = calendar.timegm(created_at.utctimetuple()) * 1000 + created_at.microsecond // 1000
        taken = {
            record.get('id') for record in records if isinstance(record, Mapping)
        }
        while f"{ORDER_ID_PREFIX}{millis}" in taken:
            millis += 1
        return f"{ORDER_ID_PREFIX}{millis}"
