"""In-memory coupon store — holds coupons for tests and local runs."""

import threading
from dataclasses import replace
from datetime import datetime

from promotions.discount.discount import Coupon, CouponStatus, UsageStats, can_transition, normalize_code
from promotions.discount.store_port import CouponStore


class InMemoryCouponStore(CouponStore):
    def __init__(self, coupons=None):
        self._lock = threading.Lock()
        self.coupons: dict[str, Coupon] = {}
        for coupon in coupons or ():
            self.add(coupon)

    def add(self, coupon: Coupon) -> Coupon:
        coupon = replace(coupon, code=normalize_code(coupon.code))
        with self._lock:
            self.coupons[str(coupon.id)] = coupon
        return coupon

    def get(self, coupon_id: str) -> Coupon | None:
        with self._lock:
            return self.coupons.get(str(coupon_id))

    def find_active_coupon_by_code(self, branch_id: str, code: str) -> Coupon | None:
        wanted = normalize_code(code)
        with self._lock:
            return next(
                (
                    c
                    for c in self.coupons.values()
                    if str(c.branch_id) == str(branch_id) and c.code == wanted and c.is_active
                ),
                None,
            )

    def record_redemption(self, coupon_id: str, discount_amount: float, redeemed_at: datetime) -> None:
        with self._lock:
            coupon = self.coupons[str(coupon_id)]
            stats = coupon.usage_stats
            self.coupons[str(coupon_id)] = replace(
                coupon,
                usage_stats=UsageStats(
                    total_used=stats.total_used + 1,
                    total_savings=round(stats.total_savings + discount_amount, 2),
                    last_used=redeemed_at,
                ),
            )

    def change_status(self, coupon_id: str, status: CouponStatus) -> Coupon:
        """Move a coupon through its lifecycle (archiving is the soft delete)."""
        with self._lock:
            coupon = self.coupons[str(coupon_id)]
            if coupon.status != status and not can_transition(coupon.status, status):
                raise ValueError(f"Cannot move coupon from {coupon.status.value} to {status.value}")
            updated = replace(coupon, status=status)
            self.coupons[str(coupon_id)] = updated
            return updated

    def reset(self):
        with self._lock:
            self.coupons.clear()
