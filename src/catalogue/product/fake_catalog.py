"""In-memory catalog adapter — holds products for tests and local runs."""

from dataclasses import replace
from datetime import UTC, datetime

from catalogue.product.catalog_port import CatalogPort
from catalogue.product.pricing import current_price_changes
from catalogue.product.product import Product


class InMemoryCatalog(CatalogPort):
    """Catalog backed by a dict, filtering price changes at lookup time."""

    def __init__(self, products=None, clock=None):
        self.products: dict[str, Product] = {}
        self._clock = clock or (lambda: datetime.now(UTC))
        for product in products or ():
            self.add(product)

    def add(self, product: Product) -> Product:
        self.products[str(product.id)] = product
        return product

    def get_product(self, product_id: str) -> Product | None:
        product = self.products.get(str(product_id))
        if product is None:
            return None
        return replace(product, price_changes=current_price_changes(product.price_changes, self._clock()))

    def reset(self):
        """Remove all products (useful between tests)."""
        self.products.clear()
