"""Business errors raised by checkout, the order state machine and restock.

Rule violations subclass Protean's ``ValidationError`` so they carry the usual
``{field: [message]}`` payload, and add structured attributes for callers that
need the specifics (which line, how many units, which transition).
Transient failures that a caller should retry derive from ``TransactionAborted``.
"""

from protean.exceptions import ValidationError


class SelectionStale(ValidationError):
    """Selected cart lines are no longer in the cart or no longer purchasable."""

    def __init__(self, item_ids, reason="Selected items are no longer in the cart"):
        self.item_ids = [str(item_id) for item_id in item_ids]
        self.reason = reason
        super().__init__({"selected_item_ids": [f"{reason}: {', '.join(self.item_ids)}"]})


class InsufficientStock(ValidationError):
    def __init__(self, line, available, requested):
        self.line = line
        self.available = available
        self.requested = requested
        name = getattr(line, "name", None) or str(line)
        super().__init__(
            {"stock": [f"Insufficient stock for '{name}': {available} available, {requested} requested"]}
        )


class InvalidTransition(ValidationError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class AlreadyRestored(ValidationError):
    def __init__(self, order_id):
        self.order_id = str(order_id)
        super().__init__({"order": [f"Stock for order {order_id} has already been restored"]})


class NotAuthorized(Exception):
    """The caller does not own the order or lacks the operator role."""


class TransactionAborted(Exception):
    """The checkout transaction did not complete and may be retried from the start."""


class CheckoutTimeout(TransactionAborted):
    def __init__(self, operation, timeout):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting to run {operation}")


class TransactionConflict(TransactionAborted):
    def __init__(self, operation, detail=""):
        self.operation = operation
        super().__init__(f"Concurrent update conflict while running {operation}: {detail}".rstrip(": "))
