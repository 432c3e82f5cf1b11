"""Restock — putting a cancelled or refunded order's units back on the shelf.

The increments are blind, so the order's ``is_stock_restored`` flag, flipped
in the same transaction, is what makes a second restock fail.
"""

import structlog
from protean import handle
from protean.fields import Identifier

from ordering.checkout.transaction import CommandOutcome, TransactionContext
from ordering.domain import ordering
from ordering.inventory.stock import AdjustBy
from ordering.notifications.notices import restocked_notices
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def restock_order(tx, order) -> int:
    """Return every line's quantity to its counter; returns the units restored."""
    order.mark_stock_restored(tx.now)

    for line in order.lines:
        tx.inventory.adjust_stock(line.product_id, line.variant_id, AdjustBy(line.quantity))

    tx.orders.add(order)

    logger.info("order_restocked", order_id=str(order.id), units=order.total_units)
    return order.total_units


@ordering.command(part_of="Order")
class RestockOrder:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class RestockOrderHandler:
    @handle(RestockOrder)
    def restock(self, command):
        tx = TransactionContext.bind()
        order = tx.orders.get(command.order_id)
        restock_order(tx, order)
        return CommandOutcome(order_id=str(order.id), notices=tuple(restocked_notices(order)))
