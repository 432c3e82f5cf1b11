"""Domain events for the Coupon aggregate."""

from protean.fields import Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was consumed by a placed order."""

    __version__ = 1

    code = String(required=True)
    order_id = Identifier()
    usage_count = Integer(required=True)
