"""Shopping Cart aggregate — the buyer's mutable selection before checkout.

A cart belongs either to a signed-in user or to a guest session. Checkout
consumes a subset of its lines (never mutating them) and removes exactly those
lines once the order is committed. When the last line goes, the coupon
reference goes with it.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.cart.events import CartCouponApplied, CartItemAdded, CartLinesCheckedOut
from ordering.domain import ordering
from ordering.errors import SelectionStale


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()  # Absent for products sold without variants
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    user_id = Identifier()  # Nullable for guest carts
    guest_id = String(max_length=255)  # Guest session identifier
    items = HasMany(CartItem)
    coupon_code = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_must_have_exactly_one_owner(self):
        if bool(self.user_id) == bool(self.guest_id):
            raise ValidationError({"cart": ["A cart belongs to either a user or a guest session"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id=None, guest_id=None):
        now = datetime.now(UTC)
        return cls(
            user_id=user_id,
            guest_id=guest_id,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, variant_id, quantity):
        """Add an item to the cart (or increase quantity if already present)."""
        existing = next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and str(i.variant_id or "") == str(variant_id or "")
            ),
            None,
        )

        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
            )
        )
        return item_id

    def apply_coupon(self, coupon_code):
        if not self.items:
            raise ValidationError({"coupon_code": ["Add items to the cart before applying a coupon"]})

        self.coupon_code = coupon_code.strip().upper()
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCouponApplied(cart_id=str(self.id), coupon_code=self.coupon_code))

    # -------------------------------------------------------------------
    # Checkout support
    # -------------------------------------------------------------------
    def select_lines(self, item_ids):
        """Return the cart items named by ``item_ids``, in the requested order.

        Raises SelectionStale when any id is not (or no longer) in the cart.
        """
        if not item_ids:
            raise ValidationError({"selected_item_ids": ["Select at least one cart item to check out"]})

        by_id = {str(item.id): item for item in self.items}
        missing = [item_id for item_id in item_ids if str(item_id) not in by_id]
        if missing:
            raise SelectionStale(missing)

        # Deduplicate while preserving order
        seen = dict.fromkeys(str(item_id) for item_id in item_ids)
        return [by_id[item_id] for item_id in seen]

    def remove_lines(self, item_ids, order_id=None):
        """Remove the checked-out lines; clears the coupon once the cart is empty."""
        wanted = {str(item_id) for item_id in item_ids}
        for item in [i for i in self.items if str(i.id) in wanted]:
            self.remove_items(item)

        coupon_cleared = None
        if not self.items and self.coupon_code:
            coupon_cleared = self.coupon_code
            self.coupon_code = None

        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLinesCheckedOut(
                cart_id=str(self.id),
                order_id=str(order_id) if order_id else None,
                item_ids=json.dumps(sorted(wanted)),
                coupon_cleared=coupon_cleared,
            )
        )
