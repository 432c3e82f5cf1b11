"""Cart Snapshot Resolver.

Turns the buyer's selected cart lines into priced ``ResolvedLine`` snapshots
using current catalog prices and stock, and re-quotes the cart's coupon
against the selected subset only. Reads only; nothing is written here.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.coupon.coupon import DiscountQuote
from ordering.errors import SelectionStale

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResolvedLine:
    cart_item_id: str
    product_id: str
    variant_id: str | None
    name: str
    sku: str | None
    unit_price: float
    quantity: int
    available_stock: int
    category_id: str | None = None
    options: tuple = ()
    image: str | None = None

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dataclass(frozen=True)
class CartCalculation:
    lines: tuple[ResolvedLine, ...]
    discount: DiscountQuote
    shipping_price: float = 0.0
    tax_price: float = 0.0

    @property
    def items_price(self) -> float:
        return round(sum(line.line_total for line in self.lines), 2)

    @property
    def discount_amount(self) -> float:
        return self.discount.amount if self.discount.is_applied else 0.0

    @property
    def coupon_code(self) -> str | None:
        return self.discount.code if self.discount.is_applied else None

    @property
    def total_price(self) -> float:
        return round(self.items_price - self.discount_amount + self.shipping_price + self.tax_price, 2)

    @property
    def item_ids(self) -> list[str]:
        return [line.cart_item_id for line in self.lines]


def _resolve_line(tx, item):
    try:
        product = tx.inventory.product(item.product_id)
    except ObjectNotFoundError:
        raise SelectionStale([item.id], reason="Product is no longer available") from None

    if not product.is_purchasable:
        raise SelectionStale([item.id], reason=f"'{product.name}' is no longer for sale")

    if product.has_variants and not item.variant_id:
        raise SelectionStale([item.id], reason=f"Choose a variant of '{product.name}'")

    if not item.variant_id:
        return ResolvedLine(
            cart_item_id=str(item.id),
            product_id=str(product.id),
            variant_id=None,
            name=product.name,
            sku=product.sku,
            unit_price=product.current_price(tx.now),
            quantity=item.quantity,
            available_stock=product.stock_quantity or 0,
            category_id=str(product.category_id) if product.category_id else None,
            image=product.image,
        )

    try:
        variant = tx.inventory.variant(product.id, item.variant_id)
    except ObjectNotFoundError:
        raise SelectionStale([item.id], reason=f"Variant of '{product.name}' is no longer available") from None
    except ValidationError:
        # the variant now belongs to a different product
        raise SelectionStale([item.id], reason=f"Variant {item.variant_id} is not an option of '{product.name}'") from None

    if not variant.is_active:
        raise SelectionStale([item.id], reason=f"Variant {variant.sku} is no longer for sale")

    return ResolvedLine(
        cart_item_id=str(item.id),
        product_id=str(product.id),
        variant_id=str(variant.id),
        name=product.name,
        sku=variant.sku,
        unit_price=variant.current_price(tx.now),
        quantity=item.quantity,
        available_stock=variant.stock_quantity or 0,
        category_id=str(product.category_id) if product.category_id else None,
        options=tuple(variant.option_values),
        image=variant.image or product.image,
    )


def resolve_selection(tx, cart, selected_item_ids, user_id=None) -> CartCalculation:
    """Price the selected cart lines and re-quote the cart's coupon against them."""
    items = cart.select_lines(selected_item_ids)
    lines = tuple(_resolve_line(tx, item) for item in items)

    if cart.coupon_code:
        discount = tx.coupons.quote(cart.coupon_code, lines, user_id=user_id, now=tx.now)
        if discount.error:
            logger.info("coupon_not_applied", cart_id=str(cart.id), coupon_code=cart.coupon_code, reason=discount.error)
    else:
        discount = DiscountQuote(code=None)

    return CartCalculation(lines=lines, discount=discount)
