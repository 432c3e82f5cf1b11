"""Order lifecycle — buyer and operator status commands and their handler.

Buyer commands carry the acting user's id and are refused unless that user
placed the order. Operator commands are only reachable through operator
routes; the role check happens at the API boundary.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.checkout.transaction import CommandOutcome
from ordering.domain import ordering
from ordering.errors import NotAuthorized
from ordering.notifications.notices import (
    request_resolved_notices,
    request_submitted_notices,
    status_changed_notices,
)
from ordering.order.order import Order, RequestType

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Buyer commands
# ---------------------------------------------------------------------------
@ordering.command(part_of="Order")
class ConfirmDelivery:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RequestCancellation:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    attachment_urls = Text()  # JSON: list of URLs


@ordering.command(part_of="Order")
class RequestRefund:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    attachment_urls = Text()  # JSON: list of URLs


# ---------------------------------------------------------------------------
# Operator commands
# ---------------------------------------------------------------------------
@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)


@ordering.command(part_of="Order")
class ApproveCancellation:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RejectCancellation:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)


@ordering.command(part_of="Order")
class ApproveRefund:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class RejectRefund:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)


def _owned_order(repo, order_id, user_id):
    order = repo.get(order_id)
    if not order.is_owned_by(user_id):
        raise NotAuthorized(f"Order {order_id} does not belong to user {user_id}")
    return order


def _attachments(command):
    if not command.attachment_urls:
        return []
    return json.loads(command.attachment_urls) if isinstance(command.attachment_urls, str) else command.attachment_urls


def _saved(repo, order, previous_status, notices):
    repo.add(order)
    logger.info("order_status_changed", order_id=str(order.id), from_status=previous_status, to_status=order.status)
    return CommandOutcome(order_id=str(order.id), notices=tuple(notices))


@ordering.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ConfirmDelivery)
    def confirm_delivery(self, command):
        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command.order_id, command.user_id)
        previous = order.status
        order.confirm_delivery()
        return _saved(repo, order, previous, status_changed_notices(order, previous))

    @handle(RequestCancellation)
    def request_cancellation(self, command):
        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command.order_id, command.user_id)
        previous = order.status
        order.request_cancellation(command.reason, _attachments(command))
        return _saved(
            repo,
            order,
            previous,
            request_submitted_notices(order, RequestType.CANCELLATION.value, command.reason),
        )

    @handle(RequestRefund)
    def request_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command.order_id, command.user_id)
        previous = order.status
        order.request_refund(command.reason, _attachments(command))
        return _saved(
            repo,
            order,
            previous,
            request_submitted_notices(order, RequestType.REFUND.value, command.reason),
        )

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.set_status(command.status)
        return _saved(repo, order, previous, status_changed_notices(order, previous))

    @handle(ApproveCancellation)
    def approve_cancellation(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.approve_cancellation()
        return _saved(
            repo,
            order,
            previous,
            request_resolved_notices(order, RequestType.CANCELLATION.value, approved=True),
        )

    @handle(RejectCancellation)
    def reject_cancellation(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.reject_cancellation(command.reason)
        return _saved(
            repo,
            order,
            previous,
            request_resolved_notices(order, RequestType.CANCELLATION.value, approved=False, reason=command.reason),
        )

    @handle(ApproveRefund)
    def approve_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.approve_refund()
        return _saved(
            repo,
            order,
            previous,
            request_resolved_notices(order, RequestType.REFUND.value, approved=True),
        )

    @handle(RejectRefund)
    def reject_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.reject_refund(command.reason)
        return _saved(
            repo,
            order,
            previous,
            request_resolved_notices(order, RequestType.REFUND.value, approved=False, reason=command.reason),
        )
