"""Tests for Coupon redemption rules and discount quotes."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
from ordering.coupon.coupon import Coupon
from protean.exceptions import ValidationError

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


@dataclass
class Line:
    product_id: str
    line_total: float
    category_id: str | None = None


def _coupon(**overrides):
    fields = {
        "code": "save20",
        "discount_type": "fixed_amount",
        "discount_value": 20.0,
        "expires_at": NOW + timedelta(days=10),
    }
    fields.update(overrides)
    return Coupon.create(**fields)


class TestCouponCreation:
    def test_code_is_uppercased(self):
        assert _coupon().code == "SAVE20"

    def test_percentage_above_hundred_is_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(discount_type="percentage", discount_value=150.0)


class TestDiscountQuote:
    def test_fixed_amount(self):
        quote = _coupon().quote([Line("p1", 100.0)], now=NOW)
        assert quote.is_applied
        assert quote.amount == 20.0

    def test_percentage_of_subtotal(self):
        quote = _coupon(discount_type="percentage", discount_value=15.0).quote([Line("p1", 40.0)], now=NOW)
        assert quote.amount == 6.0

    def test_discount_capped_at_applicable_subtotal(self):
        quote = _coupon(discount_value=50.0).quote([Line("p1", 30.0)], now=NOW)
        assert quote.amount == 30.0

    def test_minimum_order_value_uses_selected_lines_only(self):
        coupon = _coupon(min_order_value=100.0)
        quote = coupon.quote([Line("p1", 60.0)], now=NOW)
        assert not quote.is_applied
        assert "at least 100.00" in quote.error

    def test_product_scoped_coupon_only_discounts_matching_lines(self):
        coupon = _coupon(
            discount_type="percentage",
            discount_value=10.0,
            applies_to="products",
            applicable_ids=["p2"],
        )
        quote = coupon.quote([Line("p1", 100.0), Line("p2", 50.0)], now=NOW)
        assert quote.amount == 5.0

    def test_category_scoped_coupon_without_matching_lines(self):
        coupon = _coupon(applies_to="categories", applicable_ids=["shoes"])
        quote = coupon.quote([Line("p1", 100.0, category_id="hats")], now=NOW)
        assert quote.error == "Coupon does not apply to the selected items"
        assert quote.amount == 0.0

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"is_active": False}, "Coupon is not active"),
            ({"expires_at": NOW - timedelta(seconds=1)}, "Coupon has expired"),
            ({"starts_at": NOW + timedelta(days=1)}, "Coupon is not yet valid"),
            ({"max_usage": 5, "usage_count": 5}, "Coupon usage limit reached"),
        ],
    )
    def test_unredeemable_coupons(self, overrides, error):
        quote = _coupon(**overrides).quote([Line("p1", 100.0)], now=NOW)
        assert quote.error == error
        assert not quote.is_applied

    def test_per_user_limit(self):
        quote = _coupon(max_usage_per_user=1).quote([Line("p1", 100.0)], user_usage=1, now=NOW)
        assert "maximum number of times" in quote.error


class TestRedeem:
    def test_redeem_counts_usage(self):
        coupon = _coupon()
        coupon.redeem(order_id="ord-001")
        assert coupon.usage_count == 1

    def test_redeeming_past_the_limit_is_rejected(self):
        coupon = _coupon(max_usage=1)
        coupon.redeem()
        with pytest.raises(ValidationError):
            coupon.redeem()
