"""Order Assembler — from resolved lines to an unsaved Order.

A pure transformation: names, SKUs, prices and options are copied onto the
order lines, the initial status follows the payment method, and guest orders
receive a tracking token for unauthenticated lookup.
"""

import secrets
from dataclasses import dataclass
from datetime import timedelta

from protean.exceptions import ValidationError

from ordering.config import get_settings
from ordering.order.order import Order, PaymentMethod
from ordering.order.status import OrderStatus


@dataclass(frozen=True)
class Buyer:
    user_id: str | None = None
    guest_session_id: str | None = None
    guest_email: str | None = None

    @property
    def is_guest(self) -> bool:
        return not self.user_id


@dataclass(frozen=True)
class CheckoutDetails:
    payment_method: str
    shipping_address: dict
    shipping_method: str = "Standard"
    notes: str | None = None


def new_tracking_token() -> str:
    return secrets.token_urlsafe(32)


def assemble_order(calculation, buyer, details, now, settings=None) -> Order:
    settings = settings or get_settings()

    if buyer.is_guest and not (buyer.guest_email and buyer.guest_session_id):
        raise ValidationError({"guest_email": ["Guest checkout requires an email address and a guest session"]})

    try:
        payment_method = PaymentMethod(details.payment_method)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {details.payment_method}"]}) from None

    prepaid = payment_method.value in settings.prepaid_methods

    tracking_token = tracking_expires_at = None
    if buyer.is_guest:
        tracking_token = new_tracking_token()
        tracking_expires_at = now + timedelta(days=settings.guest_tracking_ttl_days)

    return Order.place(
        lines=[
            {
                "product_id": line.product_id,
                "variant_id": line.variant_id,
                "name": line.name,
                "sku": line.sku,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "options": list(line.options),
                "image": line.image,
            }
            for line in calculation.lines
        ],
        pricing={
            "items_price": calculation.items_price,
            "discount_amount": calculation.discount_amount,
            "shipping_price": calculation.shipping_price,
            "tax_price": calculation.tax_price,
            "total_price": calculation.total_price,
        },
        payment_method=payment_method.value,
        shipping_address=details.shipping_address,
        user_id=buyer.user_id,
        guest_email=buyer.guest_email if buyer.is_guest else None,
        guest_session_id=buyer.guest_session_id if buyer.is_guest else None,
        status=OrderStatus.PROCESSING if prepaid else OrderStatus.PENDING,
        is_paid=prepaid,
        coupon_code=calculation.coupon_code,
        shipping_method=details.shipping_method,
        notes=details.notes,
        guest_tracking_token=tracking_token,
        guest_tracking_expires_at=tracking_expires_at,
        now=now,
    )
