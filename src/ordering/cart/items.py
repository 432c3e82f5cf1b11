"""Cart commands for adding items and attaching a coupon, and their handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.store import CartStore
from ordering.domain import ordering


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    user_id = Identifier()
    guest_id = String(max_length=255)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    user_id = Identifier()
    guest_id = String(max_length=255)
    coupon_code = String(required=True, max_length=50)


@ordering.command_handler(part_of=ShoppingCart)
class CartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.find_for_owner(user_id=command.user_id, guest_id=command.guest_id)
        if cart is None:
            cart = ShoppingCart.create(user_id=command.user_id, guest_id=command.guest_id)

        item_id = cart.add_item(command.product_id, command.variant_id, command.quantity)
        repo.add(cart)
        return item_id

    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = CartStore(repo).cart_for(user_id=command.user_id, guest_id=command.guest_id)

        cart.apply_coupon(command.coupon_code)
        repo.add(cart)
        return cart.coupon_code
