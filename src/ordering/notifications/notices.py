"""Building the notices a committed command should send."""

from ordering.config import get_settings
from ordering.notifications.port import Audience, NoticeKind, OrderNotice


def _buyer_recipient(order):
    return str(order.user_id) if order.user_id else order.guest_email


def guest_tracking_url(order, settings=None):
    if not order.guest_tracking_token:
        return None
    settings = settings or get_settings()
    return f"{settings.frontend_url}/guest-track/{order.id}/{order.guest_tracking_token}"


def order_placed_notices(order, settings=None):
    details = {
        "total_price": order.pricing.total_price,
        "payment_method": order.payment_method,
        "lines": len(order.lines),
    }
    tracking_url = guest_tracking_url(order, settings)
    if tracking_url:
        details["tracking_url"] = tracking_url

    return [
        OrderNotice(
            kind=NoticeKind.ORDER_PLACED,
            audience=Audience.BUYER,
            order_id=str(order.id),
            status=order.status,
            recipient=_buyer_recipient(order),
            subject="Order confirmation",
            details=details,
        ),
        OrderNotice(
            kind=NoticeKind.ORDER_PLACED,
            audience=Audience.OPERATOR,
            order_id=str(order.id),
            status=order.status,
            subject="New order received",
            details=details,
        ),
    ]


def status_changed_notices(order, previous_status):
    return [
        OrderNotice(
            kind=NoticeKind.STATUS_CHANGED,
            audience=Audience.BUYER,
            order_id=str(order.id),
            status=order.status,
            recipient=_buyer_recipient(order),
            subject=f"Your order is now {order.status}",
            details={"previous_status": previous_status},
        )
    ]


def request_submitted_notices(order, request_type, reason):
    return [
        OrderNotice(
            kind=NoticeKind.REQUEST_SUBMITTED,
            audience=Audience.OPERATOR,
            order_id=str(order.id),
            status=order.status,
            subject=f"New {request_type} request",
            details={"reason": reason, "previous_status": order.previous_status},
        )
    ]


def request_resolved_notices(order, request_type, approved, reason=None):
    outcome = "approved" if approved else "rejected"
    details = {"request_type": request_type, "approved": approved}
    if reason:
        details["reason"] = reason
    return [
        OrderNotice(
            kind=NoticeKind.REQUEST_RESOLVED,
            audience=Audience.BUYER,
            order_id=str(order.id),
            status=order.status,
            recipient=_buyer_recipient(order),
            subject=f"Your {request_type} request was {outcome}",
            details=details,
        )
    ]


def restocked_notices(order):
    return [
        OrderNotice(
            kind=NoticeKind.ORDER_RESTOCKED,
            audience=Audience.OPERATOR,
            order_id=str(order.id),
            status=order.status,
            subject="Order stock restored",
            details={"units": order.total_units},
        )
    ]
