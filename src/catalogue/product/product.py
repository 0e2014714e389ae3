"""Catalogue records consumed by the order pipeline.

Products and their price-change rules are owned by the catalogue service. The
ordering pipeline only reads them, so they are modelled here as immutable
value types rather than live records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from shared.service_types import DeliveryMethod
from shared.timestamps import as_utc


class PriceChangeType(Enum):
    TEMPORARY = "temporary"
    PERMANENT = "permanent"
    FIXED = "fixed"
    INCREASE = "increase"
    DECREASE = "decrease"


@dataclass(frozen=True)
class PriceChange:
    """A time-windowed override of a product's base price.

    ``type`` is kept as the raw string from the catalogue so that rules with a
    type this service does not know about still load (they resolve to the base
    price).
    """

    id: str
    type: str
    value: float
    temp_price: float | None = None
    active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    days_of_week: tuple[str, ...] = ()
    time_start: str | None = None  # "HH:MM"
    time_end: str | None = None  # "HH:MM"
    name: str = ""
    created_at: datetime | None = None

    def __post_init__(self):
        for name in ("start_date", "end_date", "created_at"):
            object.__setattr__(self, name, as_utc(getattr(self, name)))


@dataclass(frozen=True)
class Product:
    id: str
    branch_id: str
    name: str
    price: float
    is_available: bool = True
    collection: bool = True
    delivery: bool = True
    dine_in: bool = True
    price_changes: tuple[PriceChange, ...] = field(default_factory=tuple)

    def offers(self, delivery_method: DeliveryMethod) -> bool:
        """Whether the product can be ordered for the given delivery method."""
        if delivery_method == DeliveryMethod.PICKUP:
            return self.collection
        if delivery_method == DeliveryMethod.DELIVERY:
            return self.delivery
        return self.dine_in
