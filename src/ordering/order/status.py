"""Order status state machine.

    Pending ─► Processing ─► Shipped ─► Delivered ─► RefundRequested ─► Refunded
    Pending, Processing ─► CancellationRequested ─► Cancelled ─► Refunded

The two request states are overlays: they remember the status they
interrupted, and rejecting the request restores it. ``next_status`` is the
only function that computes a new status; everything else asks it.
"""

from enum import Enum

from protean.exceptions import ValidationError

from ordering.errors import InvalidTransition


class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLATION_REQUESTED = "CancellationRequested"
    REFUND_REQUESTED = "RefundRequested"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class OrderAction(Enum):
    CONFIRM_DELIVERY = "confirm_delivery"
    REQUEST_CANCELLATION = "request_cancellation"
    REQUEST_REFUND = "request_refund"
    START_PROCESSING = "start_processing"
    SHIP = "ship"
    APPROVE_CANCELLATION = "approve_cancellation"
    REJECT_CANCELLATION = "reject_cancellation"
    APPROVE_REFUND = "approve_refund"
    REJECT_REFUND = "reject_refund"
    CANCEL = "cancel"
    REFUND = "refund"


# Marks an action whose target is the status remembered by the overlay
RESTORE_PREVIOUS = object()

# action -> (allowed source statuses, target status)
_TRANSITIONS = {
    OrderAction.CONFIRM_DELIVERY: ({OrderStatus.SHIPPED}, OrderStatus.DELIVERED),
    OrderAction.REQUEST_CANCELLATION: (
        {OrderStatus.PENDING, OrderStatus.PROCESSING},
        OrderStatus.CANCELLATION_REQUESTED,
    ),
    OrderAction.REQUEST_REFUND: ({OrderStatus.DELIVERED}, OrderStatus.REFUND_REQUESTED),
    OrderAction.START_PROCESSING: ({OrderStatus.PENDING}, OrderStatus.PROCESSING),
    OrderAction.SHIP: ({OrderStatus.PROCESSING}, OrderStatus.SHIPPED),
    OrderAction.APPROVE_CANCELLATION: ({OrderStatus.CANCELLATION_REQUESTED}, OrderStatus.CANCELLED),
    OrderAction.REJECT_CANCELLATION: ({OrderStatus.CANCELLATION_REQUESTED}, RESTORE_PREVIOUS),
    OrderAction.APPROVE_REFUND: ({OrderStatus.REFUND_REQUESTED}, OrderStatus.REFUNDED),
    OrderAction.REJECT_REFUND: ({OrderStatus.REFUND_REQUESTED}, RESTORE_PREVIOUS),
    OrderAction.CANCEL: (
        {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.CANCELLATION_REQUESTED},
        OrderStatus.CANCELLED,
    ),
    OrderAction.REFUND: (
        {OrderStatus.DELIVERED, OrderStatus.REFUND_REQUESTED, OrderStatus.CANCELLED},
        OrderStatus.REFUNDED,
    ),
}

# Status an overlay falls back to when it has nothing remembered
_RESTORE_FALLBACK = OrderStatus.PROCESSING

# Operator "set status" requests and the action each one stands for
OPERATOR_STATUS_ACTIONS = {
    OrderStatus.PROCESSING: OrderAction.START_PROCESSING,
    OrderStatus.SHIPPED: OrderAction.SHIP,
    OrderStatus.CANCELLED: OrderAction.CANCEL,
    OrderStatus.REFUNDED: OrderAction.REFUND,
}

RESTOCKABLE_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})


def next_status(current, action, previous=None):
    """Return the status ``action`` leads to from ``current``.

    ``previous`` is the status remembered by an overlay and is only consulted
    by the reject actions. Raises InvalidTransition when the table has no
    entry for ``current`` under ``action``.
    """
    current = OrderStatus(current)
    action = OrderAction(action)
    sources, target = _TRANSITIONS[action]

    if target is RESTORE_PREVIOUS:
        target = OrderStatus(previous) if previous else _RESTORE_FALLBACK

    if current not in sources:
        raise InvalidTransition(current.value, target.value)

    return target


def allowed_actions(current):
    """Actions the table permits from ``current``."""
    current = OrderStatus(current)
    return [action for action, (sources, _) in _TRANSITIONS.items() if current in sources]


def action_for_operator_status(target):
    """Map an operator's requested status to the action that reaches it."""
    try:
        return OPERATOR_STATUS_ACTIONS[OrderStatus(target)]
    except (KeyError, ValueError):
        allowed = ", ".join(status.value for status in OPERATOR_STATUS_ACTIONS)
        raise ValidationError({"status": [f"Status can only be set to one of: {allowed}"]}) from None
