"""Order placement — the checkout command and its handler.

The handler runs resolution, revalidation, assembly and commit back to back
inside the unit of work Protean opens for the command, so the stock check and
the decrement see the same counters.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text

from ordering.checkout.assembler import Buyer, CheckoutDetails, assemble_order
from ordering.checkout.coordinator import commit_checkout
from ordering.checkout.resolver import resolve_selection
from ordering.checkout.revalidation import revalidate_stock
from ordering.checkout.transaction import CommandOutcome, TransactionContext
from ordering.domain import ordering
from ordering.notifications.notices import order_placed_notices
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier()
    guest_id = String(max_length=255)
    guest_email = String(max_length=255)
    selected_item_ids = Text(required=True)  # JSON: list of cart item ids
    payment_method = String(required=True, max_length=50)
    shipping_method = String(max_length=100, default="Standard")
    shipping_address = Text(required=True)  # JSON: address dict
    notes = String(max_length=1000)


def _load_json(value):
    return json.loads(value) if isinstance(value, str) else value


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        tx = TransactionContext.bind()
        buyer = Buyer(
            user_id=command.user_id,
            guest_session_id=command.guest_id,
            guest_email=command.guest_email,
        )
        selected_item_ids = _load_json(command.selected_item_ids)
        logger.info(
            "checkout_started",
            user_id=buyer.user_id,
            guest=buyer.is_guest,
            lines=len(selected_item_ids),
            payment_method=command.payment_method,
        )

        cart = tx.carts.cart_for(user_id=buyer.user_id, guest_id=buyer.guest_session_id)
        calculation = resolve_selection(tx, cart, selected_item_ids, user_id=buyer.user_id)
        revalidate_stock(tx, calculation.lines)

        order = assemble_order(
            calculation,
            buyer,
            CheckoutDetails(
                payment_method=command.payment_method,
                shipping_address=_load_json(command.shipping_address),
                shipping_method=command.shipping_method,
                notes=command.notes,
            ),
            now=tx.now,
        )
        order_id = commit_checkout(tx, order, calculation, cart)

        return CommandOutcome(order_id=order_id, notices=tuple(order_placed_notices(order)))
