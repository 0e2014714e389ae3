"""Coupon usage counters — atomic enforcement of redemption caps.

A redemption is counted against the total, per-customer and per-day caps in
one step: either all three counters move or none does. Checking the caps and
incrementing them happen under the same lock, so concurrent orders using the
same code cannot over-redeem it.

``InMemoryUsageCounter`` suits a single process. ``SQLUsageCounter`` keeps the
counters in a table and enforces each cap with a conditional update, so every
process sharing the database sees the same counts.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date

from promotions.discount.discount import Coupon

TOTAL_LIMIT_REACHED = "Discount usage limit reached"
CUSTOMER_LIMIT_REACHED = "You have already used this discount the maximum number of times"
DAILY_LIMIT_REACHED = "Discount daily usage limit reached"


class CouponUsageCounter(ABC):
    """Abstract interface for redemption counters."""

    @abstractmethod
    def try_redeem(self, coupon: Coupon, user_id: str | None, on: date) -> str | None:
        """Count one redemption if every cap allows it.

        Returns None on success, or the reason the redemption was refused.
        """
        ...

    @abstractmethod
    def release(self, coupon: Coupon, user_id: str | None, on: date) -> None:
        """Undo a redemption previously counted by ``try_redeem``."""
        ...


class InMemoryUsageCounter(CouponUsageCounter):
    """Counters held in process memory.

    A coupon's total starts from the redemptions already recorded on it, so
    a fresh process does not hand out uses that were spent before it started.
    Counts are not shared between processes; see ``SQLUsageCounter``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total: dict[str, int] = defaultdict(int)
        self._per_customer: dict[tuple[str, str], int] = defaultdict(int)
        self._per_day: dict[tuple[str, str], int] = defaultdict(int)

    def try_redeem(self, coupon: Coupon, user_id: str | None, on: date) -> str | None:
        limits = coupon.max_uses
        coupon_id = str(coupon.id)
        customer_key = (coupon_id, str(user_id)) if user_id else None
        day_key = (coupon_id, on.isoformat())

        with self._lock:
            if coupon_id not in self._total:
                self._total[coupon_id] = coupon.usage_stats.total_used
            if limits.total and self._total[coupon_id] >= limits.total:
                return TOTAL_LIMIT_REACHED
            if limits.per_customer and customer_key and self._per_customer[customer_key] >= limits.per_customer:
                return CUSTOMER_LIMIT_REACHED
            if limits.per_day and self._per_day[day_key] >= limits.per_day:
                return DAILY_LIMIT_REACHED

            self._total[coupon_id] += 1
            if customer_key:
                self._per_customer[customer_key] += 1
            self._per_day[day_key] += 1
        return None

    def release(self, coupon: Coupon, user_id: str | None, on: date) -> None:
        coupon_id = str(coupon.id)
        with self._lock:
            self._total[coupon_id] = max(0, self._total[coupon_id] - 1)
            if user_id:
                key = (coupon_id, str(user_id))
                self._per_customer[key] = max(0, self._per_customer[key] - 1)
            day_key = (coupon_id, on.isoformat())
            self._per_day[day_key] = max(0, self._per_day[day_key] - 1)

    def usage(self, coupon_id: str) -> int:
        with self._lock:
            return self._total.get(str(coupon_id), 0)

    def reset(self):
        """Clear all counters (useful between tests)."""
        with self._lock:
            self._total.clear()
            self._per_customer.clear()
            self._per_day.clear()
