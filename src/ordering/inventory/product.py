"""Product and ProductVariant aggregates — the inventory counters checkout draws on.

A product either sells directly (its own ``stock_quantity`` is authoritative)
or through variants, in which case every variant is its own aggregate keyed by
variant id and the product's counter stays pinned at zero. Catalog editing is
outside this context; these aggregates only expose what checkout and restock
need: current price, purchasable flags and the stock counter.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.inventory.events import StockAdjusted, VariantStockAdjusted
from ordering.inventory.stock import SetTo, apply_stock_operation


def effective_price(price, sale_price, sale_starts_at, sale_ends_at, now=None):
    """List price, or the sale price when it is lower and its window is open."""
    if sale_price is None or sale_price >= price:
        return price

    now = now or datetime.now(UTC)
    if sale_starts_at is not None and now < sale_starts_at:
        return price
    if sale_ends_at is not None and now > sale_ends_at:
        return price
    return sale_price


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    category_id = Identifier()
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    sale_starts_at = DateTime()
    sale_ends_at = DateTime()
    stock_quantity = Integer(default=0)
    total_sold = Integer(default=0)
    has_variants = Boolean(default=False)
    is_active = Boolean(default=True)
    is_published = Boolean(default=True)
    image = String(max_length=500)
    created_at = DateTime()

    @invariant.post
    def variant_products_keep_no_own_stock(self):
        if self.has_variants and self.stock_quantity != 0:
            raise ValidationError({"stock_quantity": ["Products sold through variants cannot hold their own stock"]})

    @classmethod
    def create(cls, name, price, stock_quantity=0, **attributes):
        product = cls(
            name=name,
            price=price,
            created_at=datetime.now(UTC),
            **attributes,
        )
        if stock_quantity:
            product.adjust_stock(SetTo(stock_quantity))
            product._events.clear()
        return product

    @property
    def is_purchasable(self):
        return bool(self.is_active and self.is_published)

    def current_price(self, now=None):
        return effective_price(self.price, self.sale_price, self.sale_starts_at, self.sale_ends_at, now)

    def add_variant(self, sku, price, stock_quantity=0, options=None, sale_price=None, image=None):
        """Open a new variant of this product.

        Switches the product over to variant-level stock. The returned variant is
        a separate aggregate and must be persisted by the caller.
        """
        with atomic_change(self):
            self.has_variants = True
            self.stock_quantity = 0

        variant = ProductVariant(
            product_id=str(self.id),
            sku=sku,
            price=price,
            sale_price=sale_price,
            options=json.dumps(options or []),
            image=image,
        )
        if stock_quantity:
            variant.adjust_stock(SetTo(stock_quantity))
            variant._events.clear()
        return variant

    def adjust_stock(self, operation):
        """Apply a stock operation to the product-level counter."""
        if self.has_variants:
            raise ValidationError({"stock_quantity": [f"Product {self.id} tracks stock per variant"]})

        previous = self.stock_quantity
        self.stock_quantity = apply_stock_operation(previous, operation, label=self.name)

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                previous_quantity=previous,
                new_quantity=self.stock_quantity,
            )
        )
        return self.stock_quantity

    def record_sale(self, quantity):
        self.total_sold = (self.total_sold or 0) + quantity


@ordering.aggregate
class ProductVariant:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    sale_starts_at = DateTime()
    sale_ends_at = DateTime()
    stock_quantity = Integer(default=0)
    options = Text()  # JSON list of {"attribute": ..., "value": ...}
    image = String(max_length=500)
    is_active = Boolean(default=True)

    def current_price(self, now=None):
        return effective_price(self.price, self.sale_price, self.sale_starts_at, self.sale_ends_at, now)

    @property
    def option_values(self):
        return json.loads(self.options) if self.options else []

    def adjust_stock(self, operation):
        """Apply a stock operation to this variant's counter."""
        previous = self.stock_quantity
        self.stock_quantity = apply_stock_operation(previous, operation, label=self.sku)

        self.raise_(
            VariantStockAdjusted(
                product_id=str(self.product_id),
                variant_id=str(self.id),
                previous_quantity=previous,
                new_quantity=self.stock_quantity,
            )
        )
        return self.stock_quantity
