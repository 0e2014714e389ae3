"""Ordering bounded context — order creation and fulfilment pipeline.

Turns a customer's cart into a priced, immutable Order: prices are resolved
against the catalogue, stock is checked and reserved, coupons are validated
and applied, and a completion time is estimated from the branch schedule.
Status changes drive stock restoration on cancellation and notify staff.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
