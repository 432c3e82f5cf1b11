"""Coupon Ledger — coupon lookups and redemption counting within a unit of work."""

from protean.exceptions import ObjectNotFoundError

from ordering.coupon.coupon import DiscountQuote


class CouponLedger:
    def __init__(self, coupon_repo, order_repo):
        self._coupon_repo = coupon_repo
        self._order_repo = order_repo

    def usage_by_user(self, code, user_id) -> int:
        if not user_id:
            return 0
        return self._order_repo.count_coupon_usage(code, user_id)

    def quote(self, code, lines, user_id=None, now=None) -> DiscountQuote:
        """Discount for ``lines`` under ``code``; unknown codes quote zero with an error."""
        try:
            coupon = self._coupon_repo.get(code.upper())
        except ObjectNotFoundError:
            return DiscountQuote(code=code.upper(), error="Coupon not found")
        return coupon.quote(lines, user_usage=self.usage_by_user(coupon.code, user_id), now=now)

    def increment_usage(self, code, order_id=None) -> int:
        coupon = self._coupon_repo.get(code.upper())
        coupon.redeem(order_id=order_id)
        self._coupon_repo.add(coupon)
        return coupon.usage_count
