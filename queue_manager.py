from collections import deque
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import threading

from errors import DuplicateId
from menu_catalog import MenuItem


class OrderStatus(Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    SERVED = "served"


class Order:
    def __init__(self, order_id: int, customer_name: str, items: Sequence[MenuItem]):
        self.id = order_id
        self.customer_name = customer_name
        self.items = list(items)
        self.total_prep_time = sum(item.prep_time for item in self.items)
        self.status = OrderStatus.PENDING
        self.created_at = datetime.now()
        self.served_at = None

    def mark_served(self):
        self.status = OrderStatus.SERVED
        self.served_at = datetime.now()

    def mark_cancelled(self):
        self.status = OrderStatus.CANCELLED

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'customer_name': self.customer_name,
            'items': [item.name for item in self.items],
            'prep_time': self.total_prep_time,
            'status': self.status.value,
            'created_at': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<Order #{self.id} {self.customer_name!r} {self.status.value}>"


class IdGenerator:
    """Process-wide order counter; ids start at 1 and are never reused"""

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            order_id = self._next
            self._next += 1
            return order_id

    def peek(self) -> int:
        with self._lock:
            return self._next


def estimate_wait(pending_aggregate: int, candidate_prep: int) -> int:
    """Expected completion time for an order queued behind ``pending_aggregate`` minutes of work"""
    if pending_aggregate < 0 or candidate_prep < 0:
        raise ValueError("Durations must not be negative")
    return pending_aggregate + candidate_prep


class OrderQueue:
    """FIFO of pending orders.

    ``lock`` is re-entrant so a caller can hold it across several queue
    operations (read the aggregate, then enqueue) as one transaction.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._orders = deque()
        self._ids = set()
        self._pending_total = 0

    def __len__(self) -> int:
        with self.lock:
            return len(self._orders)

    def __contains__(self, order_id) -> bool:
        with self.lock:
            return order_id in self._ids

    def enqueue(self, order: Order):
        with self.lock:
            if order.id in self._ids:
                raise DuplicateId(f"Order #{order.id} is already queued")
            self._orders.append(order)
            self._ids.add(order.id)
            self._pending_total += order.total_prep_time

    def aggregate_pending_duration(self) -> int:
        """Sum of prep times of every pending order"""
        with self.lock:
            return self._pending_total

    def pop_next(self) -> Optional[Order]:
        with self.lock:
            if not self._orders:
                return None
            order = self._orders.popleft()
            self._forget(order)
            return order

    def remove_if_present(self, order_id: int) -> Optional[Order]:
        with self.lock:
            if order_id not in self._ids:
                return None
            for order in self._orders:
                if order.id == order_id:
                    self._orders.remove(order)
                    self._forget(order)
                    return order
        return None

    def snapshot(self) -> Tuple[Order, ...]:
        with self.lock:
            return tuple(self._orders)

    def orders_for(self, customer_name: str) -> List[Order]:
        wanted = customer_name.lower()
        return [order for order in self.snapshot() if order.customer_name.lower() == wanted]

    def _forget(self, order: Order):
        self._ids.discard(order.id)
        self._pending_total -= order.total_prep_time
