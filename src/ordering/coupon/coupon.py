"""Coupon aggregate — redemption rules for discount codes.

Creating and editing coupons belongs to the back office; this context only
needs to decide whether a code is redeemable for a given selection, how much
it takes off, and to count redemptions.

Discount rules:
    percentage:    round(applicable_subtotal * value / 100, 2)
    fixed_amount:  value
Either way the discount never exceeds the applicable subtotal.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from ordering.coupon.events import CouponRedeemed
from ordering.domain import ordering


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class CouponScope(Enum):
    ALL = "all"
    CATEGORIES = "categories"
    PRODUCTS = "products"


@dataclass(frozen=True)
class DiscountQuote:
    """Outcome of evaluating a coupon against a selection of lines."""

    code: str | None
    amount: float = 0.0
    error: str | None = None

    @property
    def is_applied(self):
        return self.code is not None and self.error is None and self.amount > 0


@ordering.aggregate
class Coupon:
    code = String(identifier=True, max_length=50)
    description = String(max_length=500)
    discount_type = String(choices=DiscountType, required=True)
    discount_value = Float(required=True, min_value=0.0)
    min_order_value = Float(default=0.0, min_value=0.0)
    max_usage = Integer(min_value=1)  # None means unlimited
    usage_count = Integer(default=0, min_value=0)
    max_usage_per_user = Integer(default=1, min_value=1)
    starts_at = DateTime()
    expires_at = DateTime(required=True)
    is_active = Boolean(default=True)
    applies_to = String(choices=CouponScope, default=CouponScope.ALL.value)
    applicable_ids = Text()  # JSON array of product or category ids

    @invariant.post
    def usage_cannot_exceed_limit(self):
        if self.max_usage is not None and (self.usage_count or 0) > self.max_usage:
            raise ValidationError({"usage_count": [f"Coupon {self.code} has reached its usage limit"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

    @classmethod
    def create(cls, code, discount_type, discount_value, expires_at, applicable_ids=None, **attributes):
        return cls(
            code=code.strip().upper(),
            discount_type=discount_type,
            discount_value=discount_value,
            expires_at=expires_at,
            applicable_ids=json.dumps([str(i) for i in applicable_ids or []]),
            **attributes,
        )

    def _applicable_ids(self):
        return set(json.loads(self.applicable_ids)) if self.applicable_ids else set()

    def applies_to_line(self, line):
        scope = CouponScope(self.applies_to)
        if scope == CouponScope.ALL:
            return True
        ids = self._applicable_ids()
        if scope == CouponScope.PRODUCTS:
            return str(line.product_id) in ids
        return line.category_id is not None and str(line.category_id) in ids

    def redemption_error(self, user_usage=0, now=None):
        """Reason this coupon cannot be redeemed right now, or None."""
        now = now or datetime.now(UTC)
        if not self.is_active:
            return "Coupon is not active"
        if self.starts_at is not None and now < self.starts_at:
            return "Coupon is not yet valid"
        if now > self.expires_at:
            return "Coupon has expired"
        if self.max_usage is not None and (self.usage_count or 0) >= self.max_usage:
            return "Coupon usage limit reached"
        if user_usage >= self.max_usage_per_user:
            return "Coupon already used the maximum number of times by this buyer"
        return None

    def quote(self, lines, user_usage=0, now=None):
        """Evaluate the coupon against ``lines``.

        Each line needs ``product_id``, ``category_id`` and ``line_total``. The
        minimum order value is checked against the subtotal of ``lines`` only.
        """
        error = self.redemption_error(user_usage, now)
        if error:
            return DiscountQuote(code=self.code, error=error)

        subtotal = sum(line.line_total for line in lines)
        if subtotal < (self.min_order_value or 0.0):
            return DiscountQuote(
                code=self.code,
                error=f"Order subtotal must be at least {self.min_order_value:.2f} to use this coupon",
            )

        applicable_subtotal = sum(line.line_total for line in lines if self.applies_to_line(line))
        if applicable_subtotal <= 0:
            return DiscountQuote(code=self.code, error="Coupon does not apply to the selected items")

        if self.discount_type == DiscountType.PERCENTAGE.value:
            amount = round(applicable_subtotal * self.discount_value / 100, 2)
        else:
            amount = self.discount_value

        return DiscountQuote(code=self.code, amount=round(min(amount, applicable_subtotal), 2))

    def redeem(self, order_id=None):
        self.usage_count = (self.usage_count or 0) + 1

        self.raise_(
            CouponRedeemed(
                code=self.code,
                order_id=str(order_id) if order_id else None,
                usage_count=self.usage_count,
            )
        )
