"""Cart Store — locating a buyer's cart and removing consumed lines."""

from protean.exceptions import ObjectNotFoundError


class CartStore:
    def __init__(self, cart_repo):
        self._cart_repo = cart_repo

    def cart_for(self, user_id=None, guest_id=None):
        """Return the buyer's cart, raising ObjectNotFoundError when there is none."""
        cart = self._cart_repo.find_for_owner(user_id=user_id, guest_id=guest_id)
        if cart is None:
            owner = f"user {user_id}" if user_id else f"guest {guest_id}"
            raise ObjectNotFoundError(f"No cart found for {owner}")
        return cart

    def remove_lines(self, cart, item_ids, order_id=None):
        cart.remove_lines(item_ids, order_id=order_id)
        self._cart_repo.add(cart)
