from collections import defaultdict
from datetime import datetime
from typing import Dict, List, NamedTuple, Tuple
import threading


class FeedbackEntry(NamedTuple):
    customer_name: str
    comment: str
    received_at: datetime


class FeedbackLedger:
    """Append-only comments, kept per customer in arrival order"""

    def __init__(self):
        self._entries = defaultdict(list)
        self._lock = threading.Lock()

    def append(self, customer_name: str, comment: str) -> FeedbackEntry:
        if not comment or not comment.strip():
            raise ValueError("Feedback comment must not be empty")
        entry = FeedbackEntry(customer_name, comment, datetime.now())
        with self._lock:
            self._entries[customer_name].append(entry)
        return entry

    def entries_for(self, customer_name: str) -> Tuple[str, ...]:
        with self._lock:
            return tuple(entry.comment for entry in self._entries.get(customer_name, ()))

    def all_entries(self) -> Dict[str, List[str]]:
        with self._lock:
            return {
                customer: [entry.comment for entry in entries]
                for customer, entries in self._entries.items()
            }
