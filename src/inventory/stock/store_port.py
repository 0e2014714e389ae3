"""Stock storage port — per-product stock counters.

Every mutation goes through this interface. Implementations must make
``decrement`` an atomic conditional update: it either lowers the quantity by
the full amount, or changes nothing when the result would be negative.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StockRecord:
    """Available quantity for one product (and so, implicitly, one branch)."""

    product_id: str
    branch_id: str
    quantity: int
    product_name: str = ""
    is_managed: bool = True
    low_stock_threshold: int = 0
    updated_at: datetime | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.is_managed and self.quantity <= self.low_stock_threshold


class StockStore(ABC):
    """Abstract interface for stock counter storage."""

    @abstractmethod
    def get(self, product_id: str) -> StockRecord | None:
        """Return the stock record for a product, or None if it has none."""
        ...

    @abstractmethod
    def put(self, record: StockRecord) -> StockRecord:
        """Create or replace a stock record."""
        ...

    @abstractmethod
    def decrement(self, product_id: str, quantity: int) -> StockRecord | None:
        """Atomically lower the quantity, only if it stays at or above zero.

        Returns the updated record, or None if the decrement was refused
        (insufficient quantity or unknown product).
        """
        ...

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> StockRecord | None:
        """Atomically raise the quantity. Returns None for an unknown product."""
        ...

    @abstractmethod
    def list_for_branch(self, branch_id: str) -> list[StockRecord]:
        """All stock records belonging to a branch."""
        ...
