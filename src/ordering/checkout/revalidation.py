"""Stock Revalidator — the in-transaction stock check that precedes any decrement."""

from collections import defaultdict

from ordering.errors import InsufficientStock


def revalidate_stock(tx, lines) -> None:
    """Fail with InsufficientStock unless every counter covers what the lines take from it.

    Lines sharing a counter (same product and variant) are checked against
    their combined quantity.
    """
    demand = defaultdict(int)
    first_line = {}
    for line in lines:
        key = (line.product_id, line.variant_id)
        demand[key] += line.quantity
        first_line.setdefault(key, line)

    for key, requested in demand.items():
        available = tx.inventory.get_stock(*key)
        if requested > available:
            raise InsufficientStock(first_line[key], available=available, requested=requested)
