"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout committed and produced a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    guest_email = String()
    status = String(required=True)
    items = Text(required=True)  # JSON array of line snapshots
    items_price = Float(required=True)
    discount_amount = Float(default=0.0)
    total_price = Float(required=True)
    coupon_code = String()
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved from one status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    action = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    note = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRequestSubmitted:
    """The buyer asked for the order to be cancelled or refunded."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_type = String(required=True)
    reason = String(required=True)
    attachment_urls = Text()
    previous_status = String(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRestocked:
    """Units from a cancelled or refunded order went back on the shelf."""

    __version__ = 1

    order_id = Identifier(required=True)
    units = Integer(required=True)
    restocked_at = DateTime(required=True)
