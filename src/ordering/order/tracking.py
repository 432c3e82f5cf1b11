"""Guest order tracking — unauthenticated lookup by order id and token."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.order.order import Order

MIN_TOKEN_LENGTH = 30


def find_guest_order(order_id, token, now=None) -> Order:
    """Return the guest order matching ``order_id`` and ``token``.

    Expired tokens, unknown ids and orders placed by signed-in users all look
    the same to the caller: not found.
    """
    if not token or len(token) < MIN_TOKEN_LENGTH:
        raise ValidationError({"token": ["Tracking token is malformed"]})

    now = now or datetime.now(UTC)
    order = current_domain.repository_for(Order).find_by_tracking_token(order_id, token)

    if (
        order is None
        or order.user_id
        or order.guest_tracking_expires_at is None
        or order.guest_tracking_expires_at <= now
    ):
        raise ObjectNotFoundError(f"No trackable guest order {order_id} for this link")
    return order
