"""Commit Coordinator — the writes of a checkout, in their fixed order.

1. persist the order
2. decrement each line's counter and add to the product's units sold
3. count the coupon redemption
4. drop the consumed lines from the cart

Runs inside the command's unit of work; an exception at any step rolls all
of it back.
"""

import structlog

from ordering.inventory.stock import AdjustBy

logger = structlog.get_logger(__name__)


def commit_checkout(tx, order, calculation, cart) -> str:
    order_id = str(order.id)

    tx.orders.add(order)

    for line in order.lines:
        tx.inventory.adjust_stock(line.product_id, line.variant_id, AdjustBy(-line.quantity))
        tx.inventory.record_sale(line.product_id, line.quantity)

    if order.coupon_code:
        tx.coupons.increment_usage(order.coupon_code, order_id=order_id)

    tx.carts.remove_lines(cart, calculation.item_ids, order_id=order_id)

    logger.info(
        "checkout_committed",
        order_id=order_id,
        lines=len(order.lines),
        units=order.total_units,
        total_price=order.pricing.total_price,
        coupon_code=order.coupon_code,
    )
    return order_id
