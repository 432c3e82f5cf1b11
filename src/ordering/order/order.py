"""Order aggregate — the immutable record a checkout produces.

Lines, prices and the shipping address are snapshots taken at checkout and
never recomputed. After creation only the status (through ``next_status``),
the payment/delivery flags, the request records, operator notes and the
restock guard may change.

    total_price == items_price - discount_amount + shipping_price + tax_price
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import AlreadyRestored
from ordering.order.events import (
    OrderPlaced,
    OrderRequestSubmitted,
    OrderRestocked,
    OrderStatusChanged,
)
from ordering.order.status import (
    RESTOCKABLE_STATUSES,
    OrderAction,
    OrderStatus,
    action_for_operator_status,
    next_status,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PaymentMethod(Enum):
    COD = "COD"
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"


class RequestType(Enum):
    CANCELLATION = "cancellation"
    REFUND = "refund"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, captured at checkout time.

    Later changes to the buyer's address book do not touch placed orders.
    """

    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100)


@ordering.value_object(part_of="Order")
class OrderPricing:
    items_price = Float(required=True, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    shipping_price = Float(default=0.0, min_value=0.0)
    tax_price = Float(default=0.0, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)

    @invariant.post
    def total_must_add_up(self):
        expected = round(self.items_price - self.discount_amount + self.shipping_price + self.tax_price, 2)
        if abs(round(self.total_price, 2) - expected) > 0.005:
            raise ValidationError({"total_price": [f"Total {self.total_price} does not match components ({expected})"]})

    @invariant.post
    def discount_cannot_exceed_items(self):
        if self.discount_amount > self.items_price:
            raise ValidationError({"discount_amount": ["Discount cannot exceed the items price"]})


@ordering.value_object(part_of="Order")
class OrderRequest:
    """A buyer's cancellation or refund request."""

    reason = String(required=True, max_length=1000)
    attachment_urls = Text()  # JSON array of URLs
    requested_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    options = Text()  # JSON array of {"attribute": ..., "value": ...}
    image = String(max_length=500)

    @property
    def line_total(self):
        return round(self.unit_price * self.quantity, 2)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    user_id = Identifier()
    guest_email = String(max_length=255)
    guest_session_id = String(max_length=255)
    lines = HasMany(OrderLine)
    shipping_address = ValueObject(ShippingAddress)
    pricing = ValueObject(OrderPricing)
    coupon_code = String(max_length=50)
    payment_method = String(choices=PaymentMethod, required=True)
    shipping_method = String(max_length=100, default="Standard")
    notes = String(max_length=1000)
    admin_notes = String(max_length=1000)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    previous_status = String(choices=OrderStatus)
    cancellation_request = ValueObject(OrderRequest)
    refund_request = ValueObject(OrderRequest)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    is_delivered = Boolean(default=False)
    delivered_at = DateTime()
    is_stock_restored = Boolean(default=False)
    restocked_at = DateTime()
    guest_tracking_token = String(max_length=128)
    guest_tracking_expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_have_exactly_one_buyer(self):
        is_guest = bool(self.guest_email and self.guest_session_id)
        if bool(self.user_id) == is_guest:
            raise ValidationError({"buyer": ["An order belongs to either a user or a guest (email and session)"]})

    @invariant.post
    def order_must_have_lines(self):
        if not self.lines:
            raise ValidationError({"lines": ["An order must contain at least one line"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        lines,
        pricing,
        payment_method,
        shipping_address,
        user_id=None,
        guest_email=None,
        guest_session_id=None,
        status=OrderStatus.PENDING,
        is_paid=False,
        coupon_code=None,
        shipping_method="Standard",
        notes=None,
        guest_tracking_token=None,
        guest_tracking_expires_at=None,
        now=None,
    ):
        """Create a placed order from snapshot data.

        Args:
            lines: List of dicts with product_id, variant_id, name, sku,
                   unit_price, quantity, options (list) and image.
            pricing: Dict with items_price, discount_amount, shipping_price,
                     tax_price and total_price.
            shipping_address: Dict matching ShippingAddress.
        """
        now = now or datetime.now(UTC)
        status = OrderStatus(status)

        order = cls(
            user_id=user_id,
            guest_email=guest_email,
            guest_session_id=guest_session_id,
            lines=[
                OrderLine(
                    product_id=line["product_id"],
                    variant_id=line.get("variant_id"),
                    name=line["name"],
                    sku=line.get("sku"),
                    unit_price=line["unit_price"],
                    quantity=line["quantity"],
                    options=json.dumps(line.get("options") or []),
                    image=line.get("image"),
                )
                for line in lines
            ],
            pricing=OrderPricing(**pricing),
            shipping_address=ShippingAddress(**shipping_address),
            coupon_code=coupon_code,
            payment_method=PaymentMethod(payment_method).value,
            shipping_method=shipping_method or "Standard",
            notes=notes,
            status=status.value,
            is_paid=is_paid,
            paid_at=now if is_paid else None,
            guest_tracking_token=guest_tracking_token,
            guest_tracking_expires_at=guest_tracking_expires_at,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id) if user_id else None,
                guest_email=guest_email,
                status=status.value,
                items=json.dumps(
                    [
                        {
                            "product_id": str(line.product_id),
                            "variant_id": str(line.variant_id) if line.variant_id else None,
                            "quantity": line.quantity,
                            "unit_price": line.unit_price,
                        }
                        for line in order.lines
                    ]
                ),
                items_price=order.pricing.items_price,
                discount_amount=order.pricing.discount_amount,
                total_price=order.pricing.total_price,
                coupon_code=coupon_code,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_guest_order(self):
        return not self.user_id

    def is_owned_by(self, user_id):
        return bool(user_id) and str(self.user_id) == str(user_id)

    @property
    def total_units(self):
        return sum(line.quantity for line in self.lines)

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _transition(self, action, now, note=None):
        """Move to the status the transition table assigns to ``action``.

        Raises InvalidTransition before anything is touched.
        """
        current = OrderStatus(self.status)
        target = next_status(current, action, self.previous_status)

        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                action=OrderAction(action).value,
                from_status=current.value,
                to_status=target.value,
                note=note,
                changed_at=now,
            )
        )
        return current

    # -------------------------------------------------------------------
    # Buyer actions
    # -------------------------------------------------------------------
    def confirm_delivery(self, now=None):
        now = now or datetime.now(UTC)
        self._transition(OrderAction.CONFIRM_DELIVERY, now)

        self.is_delivered = True
        self.delivered_at = now
        if self.payment_method == PaymentMethod.COD.value and not self.is_paid:
            self.is_paid = True
            self.paid_at = now

    def _request(self, action, request_type, reason, attachment_urls, now):
        if not reason or not reason.strip():
            raise ValidationError({"reason": [f"A reason is required to request a {request_type.value}"]})

        now = now or datetime.now(UTC)
        previous = self._transition(action, now)

        request = OrderRequest(
            reason=reason.strip(),
            attachment_urls=json.dumps(list(attachment_urls or [])),
            requested_at=now,
        )
        self.previous_status = previous.value
        if request_type == RequestType.CANCELLATION:
            self.cancellation_request = request
        else:
            self.refund_request = request

        self.raise_(
            OrderRequestSubmitted(
                order_id=str(self.id),
                request_type=request_type.value,
                reason=request.reason,
                attachment_urls=request.attachment_urls,
                previous_status=previous.value,
                requested_at=now,
            )
        )

    def request_cancellation(self, reason, attachment_urls=None, now=None):
        self._request(OrderAction.REQUEST_CANCELLATION, RequestType.CANCELLATION, reason, attachment_urls, now)

    def request_refund(self, reason, attachment_urls=None, now=None):
        self._request(OrderAction.REQUEST_REFUND, RequestType.REFUND, reason, attachment_urls, now)

    # -------------------------------------------------------------------
    # Operator actions
    # -------------------------------------------------------------------
    def set_status(self, target, now=None):
        """Operator status update; only Processing, Shipped, Cancelled and Refunded."""
        action = action_for_operator_status(target)
        if action == OrderAction.CANCEL:
            self.cancel(now)
        elif action == OrderAction.REFUND:
            self.refund(now)
        else:
            self._transition(action, now or datetime.now(UTC))

    def approve_cancellation(self, now=None):
        self._transition(OrderAction.APPROVE_CANCELLATION, now or datetime.now(UTC))
        self.admin_notes = "Cancellation request approved."

    def reject_cancellation(self, reason, now=None):
        self._reject(OrderAction.REJECT_CANCELLATION, RequestType.CANCELLATION, reason, now)

    def approve_refund(self, now=None):
        self._transition(OrderAction.APPROVE_REFUND, now or datetime.now(UTC))
        self.is_paid = False
        self.paid_at = None
        self.admin_notes = "Refund request approved."

    def reject_refund(self, reason, now=None):
        self._reject(OrderAction.REJECT_REFUND, RequestType.REFUND, reason, now)

    def _reject(self, action, request_type, reason, now):
        if not reason or not reason.strip():
            raise ValidationError({"reason": [f"A reason is required to reject a {request_type.value} request"]})

        self._transition(action, now or datetime.now(UTC), note=reason.strip())
        self.previous_status = None
        self.admin_notes = f"{request_type.value.capitalize()} request rejected: {reason.strip()}"

    def cancel(self, now=None):
        self._transition(OrderAction.CANCEL, now or datetime.now(UTC))

    def refund(self, now=None):
        self._transition(OrderAction.REFUND, now or datetime.now(UTC))
        self.is_paid = False
        self.paid_at = None

    # -------------------------------------------------------------------
    # Restock guard
    # -------------------------------------------------------------------
    def mark_stock_restored(self, now=None):
        """Flip the restock guard; callers put the units back in the same transaction."""
        if self.is_stock_restored:
            raise AlreadyRestored(self.id)
        if OrderStatus(self.status) not in RESTOCKABLE_STATUSES:
            raise ValidationError(
                {"status": [f"Only cancelled or refunded orders can be restocked, order is {self.status}"]}
            )

        now = now or datetime.now(UTC)
        self.is_stock_restored = True
        self.restocked_at = now
        self.updated_at = now

        self.raise_(
            OrderRestocked(
                order_id=str(self.id),
                units=self.total_units,
                restocked_at=now,
            )
        )
