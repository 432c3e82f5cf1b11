"""Repository for the ShoppingCart aggregate."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_for_owner(self, user_id=None, guest_id=None) -> ShoppingCart | None:
        """Find the cart of a user, or of a guest session when no user is given."""
        if user_id:
            results = self._dao.query.filter(user_id=str(user_id)).all().items
        elif guest_id:
            results = self._dao.query.filter(guest_id=str(guest_id)).all().items
        else:
            return None
        return self.get(results[0].id) if results else None
