from datetime import datetime
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple
import logging
import threading

from queue_manager import Order

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_WINDOW_MINUTES = 5


class Decision(Enum):
    COMMIT = "commit"
    DISCARD = "discard"

    @classmethod
    def parse(cls, value) -> "Decision":
        """Accept 'commit'/'discard', or a y/n answer to "cancel this order?" """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ('commit', 'confirm', 'n', 'no'):
            return cls.COMMIT
        if text in ('discard', 'cancel', 'y', 'yes'):
            return cls.DISCARD
        raise ValueError(f"Unknown cancellation decision {value!r}")


class CancellationRecord(NamedTuple):
    order_id: int
    customer_name: str
    cancelled_at: datetime
    prep_time: int

    def to_dict(self) -> Dict:
        return {
            'order_id': self.order_id,
            'customer_name': self.customer_name,
            'cancelled_at': self.cancelled_at.isoformat(),
            'prep_time': self.prep_time,
        }


class CancellationGate:
    """Records the commit/discard outcome for orders not yet queued.

    The window is a policy value handed to clients; nothing here runs a
    timer. Callers must solicit the decision before it elapses.
    """

    def __init__(self, window_minutes: int = DEFAULT_CANCEL_WINDOW_MINUTES):
        if window_minutes <= 0:
            raise ValueError("Cancellation window must be positive")
        self.window_minutes = window_minutes
        self._records = []
        self._lock = threading.Lock()

    def decide(self, order: Order, decision: Decision, now: Optional[datetime] = None) -> Decision:
        decision = Decision.parse(decision)
        if decision is Decision.DISCARD:
            order.mark_cancelled()
            record = CancellationRecord(order.id, order.customer_name, now or datetime.now(), order.total_prep_time)
            with self._lock:
                self._records.append(record)
            logger.info("Order #%s for %s discarded", order.id, order.customer_name)
        return decision

    def records(self) -> Tuple[CancellationRecord, ...]:
        with self._lock:
            return tuple(self._records)
