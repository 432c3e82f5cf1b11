"""Domain events for the inventory counters."""

from protean.fields import Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="Product")
class StockAdjusted:
    """A product-level stock counter changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ProductVariant")
class VariantStockAdjusted:
    """A variant's stock counter changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
