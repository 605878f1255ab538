"""Exceptions raised by the ordering core.

Each carries a machine-readable ``kind`` and the HTTP status the API
layer answers with.
"""


class OrderingError(Exception):
    kind = 'ordering_error'
    status_code = 400

    def to_dict(self):
        return {'error': str(self), 'kind': self.kind}


class UnknownItem(OrderingError):
    kind = 'unknown_item'


class InvalidSelection(OrderingError):
    kind = 'invalid_selection'


class UnknownOrder(OrderingError):
    kind = 'unknown_order'
    status_code = 404


class DuplicateId(OrderingError):
    """An order id was enqueued twice; only reachable through a locking bug"""
    kind = 'duplicate_id'
    status_code = 500
