"""Order intake: validation, pricing, wait estimation and commit/discard.

The queue, the id counter and the aggregate wait form one consistency
domain guarded by ``OrderQueue.lock``. Every submission takes that lock
for id assignment and again (or in the same section) for the aggregate
read plus enqueue, so the wait reported to a customer always matches the
queue the order actually joined. Nothing slow happens under the lock:
a caller-supplied decision callback runs with the lock released.
"""

from collections.abc import Iterable
from typing import Callable, Dict, List, Optional
import logging

from cancellation import CancellationGate, CancellationRecord, Decision
from errors import DuplicateId, InvalidSelection, UnknownItem, UnknownOrder
from feedback_ledger import FeedbackEntry, FeedbackLedger
from menu_catalog import MenuCatalog, MenuItem
from queue_manager import IdGenerator, Order, OrderQueue, OrderStatus, estimate_wait

logger = logging.getLogger(__name__)


class OrderQuote:
    """A priced order with an id, waiting for the customer's commit/discard answer"""

    def __init__(self, order: Order, queue_wait: int, cancel_window_minutes: int):
        self.order = order
        self.queue_wait_before_this = queue_wait
        self.total_wait = estimate_wait(queue_wait, order.total_prep_time)
        self.cancel_window_minutes = cancel_window_minutes

    @property
    def order_id(self) -> int:
        return self.order.id

    def to_dict(self) -> Dict:
        return {
            'order_id': self.order.id,
            'customer_name': self.order.customer_name,
            'items': [item.name for item in self.order.items],
            'prep_time': self.order.total_prep_time,
            'queue_wait_before_this': self.queue_wait_before_this,
            'total_wait': self.total_wait,
            'cancel_window_minutes': self.cancel_window_minutes,
            'status': 'awaiting_decision',
        }


class OrderReceipt(OrderQuote):
    """Outcome of a submission: committed to the queue or discarded"""

    @property
    def committed(self) -> bool:
        return self.order.status is not OrderStatus.CANCELLED

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['status'] = self.order.status.value
        return data


class IntakeCoordinator:
    def __init__(self, catalog: MenuCatalog, queue: Optional[OrderQueue] = None,
                 id_generator: Optional[IdGenerator] = None,
                 gate: Optional[CancellationGate] = None,
                 ledger: Optional[FeedbackLedger] = None):
        self.catalog = catalog
        self.queue = queue if queue is not None else OrderQueue()
        self.id_generator = id_generator if id_generator is not None else IdGenerator()
        self.gate = gate if gate is not None else CancellationGate()
        self.ledger = ledger if ledger is not None else FeedbackLedger()
        # Quotes handed out over the two-step API, keyed by order id
        self._held = {}
        self._served = []

    @property
    def cancel_window_minutes(self) -> int:
        return self.gate.window_minutes

    def resolve_selection(self, selected_ids) -> List[MenuItem]:
        """Turn menu positions into items, in menu order"""
        if selected_ids is None or isinstance(selected_ids, (str, bytes)) or not isinstance(selected_ids, Iterable):
            raise InvalidSelection("Dish selection must be a list of menu numbers")

        positions = set()
        for position in selected_ids:
            if isinstance(position, bool) or not isinstance(position, int) or position < 1:
                raise InvalidSelection(f"Invalid dish number {position!r}")
            positions.add(position)

        if not positions:
            raise InvalidSelection("No valid items selected.")

        try:
            return [self.catalog.item_at(position) for position in sorted(positions)]
        except UnknownItem as e:
            raise InvalidSelection(str(e)) from e

    def submit_order(self, customer_name: str, selected_ids,
                     decide: Optional[Callable[[OrderQuote], Decision]] = None) -> OrderReceipt:
        """Validate, price and either queue or discard an order.

        Without ``decide`` the order is committed in a single critical
        section. With it, ``decide(quote)`` is called outside the lock and
        its answer applied once the lock is re-acquired.
        """
        items = self.resolve_selection(selected_ids)

        if decide is None:
            with self.queue.lock:
                order = Order(self.id_generator.next_id(), customer_name, items)
                receipt = self._commit_locked(order)
            self._log_commit(receipt)
            return receipt

        quote = self._issue_quote(customer_name, items)
        try:
            decision = Decision.parse(decide(quote))
        except Exception:
            # The id is spent; log the order as cancelled before propagating
            self._discard(quote.order)
            raise
        return self._apply(quote.order, decision)

    def quote_order(self, customer_name: str, selected_ids) -> OrderQuote:
        """First half of the two-step flow; the order waits for decide_cancellation"""
        items = self.resolve_selection(selected_ids)
        quote = self._issue_quote(customer_name, items, hold=True)
        logger.info("Order #%s quoted for %s (%s min)", quote.order_id, customer_name, quote.total_wait)
        return quote

    def decide_cancellation(self, order_id: int, decision) -> OrderReceipt:
        decision = Decision.parse(decision)
        with self.queue.lock:
            order = self._held.pop(order_id, None)
            if order is None:
                raise UnknownOrder(f"Order #{order_id} is not awaiting a decision")
            if decision is Decision.COMMIT:
                receipt = self._commit_locked(order)
        if decision is Decision.COMMIT:
            self._log_commit(receipt)
            return receipt
        return self._discard(order)

    def serve_next(self) -> Optional[Order]:
        """Hand the head of the queue to the counter"""
        with self.queue.lock:
            order = self.queue.pop_next()
            if order is None:
                return None
            order.mark_served()
            self._served.append(order)
        logger.info("Order #%s served to %s", order.id, order.customer_name)
        return order

    def remove_order(self, order_id: int) -> Optional[Order]:
        """Operator correction: pull a pending or held order out of the queue"""
        with self.queue.lock:
            order = self.queue.remove_if_present(order_id)
            if order is None:
                order = self._held.pop(order_id, None)
        if order is None:
            return None
        self.gate.decide(order, Decision.DISCARD)
        logger.info("Order #%s removed from the queue by an operator", order_id)
        return order

    def pending_orders(self) -> List[Order]:
        return list(self.queue.snapshot())

    def served_orders(self) -> List[Order]:
        with self.queue.lock:
            return list(self._served)

    def customer_orders(self, customer_name: str) -> List[Order]:
        return self.queue.orders_for(customer_name)

    def queue_status(self) -> Dict:
        with self.queue.lock:
            orders = self.queue.snapshot()
            pending_wait = self.queue.aggregate_pending_duration()
            awaiting = len(self._held)
            served = len(self._served)
        return {
            'queue_length': len(orders),
            'pending_wait': pending_wait,
            'awaiting_decision': awaiting,
            'served_count': served,
            'queue_orders': [order.to_dict() for order in orders],
        }

    def cancellations(self) -> List[CancellationRecord]:
        return list(self.gate.records())

    def submit_feedback(self, customer_name: str, comment: str) -> FeedbackEntry:
        entry = self.ledger.append(customer_name, comment)
        logger.info("Feedback received from %s", customer_name)
        return entry

    def list_feedback(self) -> Dict[str, List[str]]:
        return self.ledger.all_entries()

    def _issue_quote(self, customer_name: str, items: List[MenuItem], hold: bool = False) -> OrderQuote:
        with self.queue.lock:
            order = Order(self.id_generator.next_id(), customer_name, items)
            queue_wait = self.queue.aggregate_pending_duration()
            if hold:
                self._held[order.id] = order
        return OrderQuote(order, queue_wait, self.cancel_window_minutes)

    def _apply(self, order: Order, decision: Decision) -> OrderReceipt:
        if decision is Decision.DISCARD:
            return self._discard(order)
        with self.queue.lock:
            receipt = self._commit_locked(order)
        self._log_commit(receipt)
        return receipt

    def _commit_locked(self, order: Order) -> OrderReceipt:
        # Caller holds queue.lock: the aggregate read and the enqueue are one step
        queue_wait = self.queue.aggregate_pending_duration()
        try:
            self.queue.enqueue(order)
        except DuplicateId:
            logger.error("Order #%s collided with a queued id; submission rejected", order.id)
            raise
        return OrderReceipt(order, queue_wait, self.cancel_window_minutes)

    def _discard(self, order: Order) -> OrderReceipt:
        self.gate.decide(order, Decision.DISCARD)
        with self.queue.lock:
            queue_wait = self.queue.aggregate_pending_duration()
        return OrderReceipt(order, queue_wait, self.cancel_window_minutes)

    def _log_commit(self, receipt: OrderReceipt):
        logger.info("Order #%s committed for %s: %s min queued ahead, ready in %s min",
                    receipt.order_id, receipt.order.customer_name,
                    receipt.queue_wait_before_this, receipt.total_wait)
