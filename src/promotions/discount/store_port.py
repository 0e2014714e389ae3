"""Coupon store port — lookup of coupons by code and redemption bookkeeping."""

from abc import ABC, abstractmethod
from datetime import datetime

from promotions.discount.discount import Coupon


class CouponStore(ABC):
    """Abstract interface for coupon storage."""

    @abstractmethod
    def find_active_coupon_by_code(self, branch_id: str, code: str) -> Coupon | None:
        """Return the branch's active coupon with this code, or None."""
        ...

    @abstractmethod
    def record_redemption(self, coupon_id: str, discount_amount: float, redeemed_at: datetime) -> None:
        """Add one use and its savings to the coupon's usage statistics."""
        ...
