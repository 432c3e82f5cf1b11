"""Inventory Store — stock reads and writes bound to one unit of work.

Aggregates are loaded once per store and reused, so the revalidation read and
the decrement inside a checkout observe the same counter.
"""

from protean.exceptions import ValidationError

from ordering.inventory.product import Product, ProductVariant


class InventoryStore:
    def __init__(self, product_repo, variant_repo):
        self._product_repo = product_repo
        self._variant_repo = variant_repo
        self._products = {}
        self._variants = {}

    def product(self, product_id) -> Product:
        key = str(product_id)
        if key not in self._products:
            self._products[key] = self._product_repo.get(key)
        return self._products[key]

    def variant(self, product_id, variant_id) -> ProductVariant:
        key = str(variant_id)
        if key not in self._variants:
            self._variants[key] = self._variant_repo.get(key)

        variant = self._variants[key]
        if str(variant.product_id) != str(product_id):
            raise ValidationError({"variant_id": [f"Variant {variant_id} does not belong to product {product_id}"]})
        return variant

    def _counter(self, product_id, variant_id):
        if variant_id:
            return self.variant(product_id, variant_id), self._variant_repo
        return self.product(product_id), self._product_repo

    def get_stock(self, product_id, variant_id=None) -> int:
        counter, _ = self._counter(product_id, variant_id)
        return counter.stock_quantity or 0

    def adjust_stock(self, product_id, variant_id, operation) -> int:
        counter, repo = self._counter(product_id, variant_id)
        new_quantity = counter.adjust_stock(operation)
        repo.add(counter)
        return new_quantity

    def record_sale(self, product_id, quantity) -> None:
        product = self.product(product_id)
        product.record_sale(quantity)
        self._product_repo.add(product)
