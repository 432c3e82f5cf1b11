"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon code was attached to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@ordering.event(part_of="ShoppingCart")
class CartLinesCheckedOut:
    """Lines were consumed by a placed order and removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier()
    item_ids = Text(required=True)  # JSON array
    coupon_cleared = String()
