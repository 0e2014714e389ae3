"""Catalog port — read access to products for the order pipeline."""

from abc import ABC, abstractmethod

from catalogue.product.product import Product


class CatalogPort(ABC):
    """Abstract interface for catalog lookups."""

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product with its currently applicable price changes.

        ``price_changes`` on the returned product must already be filtered to
        the rules current at lookup time and ordered by precedence (see
        ``catalogue.product.pricing.current_price_changes``).

        Returns None when the product does not exist.
        """
        ...
