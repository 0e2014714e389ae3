"""Coupon records and their lifecycle state.

Coupons are created and edited by branch admins elsewhere; the order pipeline
reads them through a coupon store. They are never hard-deleted: archiving is a
lifecycle state, not a boolean layered on top of ``is_active``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from shared.service_types import WEEKDAYS, ServiceType
from shared.timestamps import as_utc


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


# Legal lifecycle moves. Archived is terminal.
_VALID_STATUS_TRANSITIONS = {
    CouponStatus.ACTIVE: {CouponStatus.INACTIVE, CouponStatus.ARCHIVED},
    CouponStatus.INACTIVE: {CouponStatus.ACTIVE, CouponStatus.ARCHIVED},
    CouponStatus.ARCHIVED: set(),
}


def can_transition(current: CouponStatus, target: CouponStatus) -> bool:
    return target in _VALID_STATUS_TRANSITIONS[current]


def _all_days():
    return {day: True for day in WEEKDAYS}


def _all_service_types():
    return {service.value: True for service in ServiceType}


@dataclass(frozen=True)
class UsageLimits:
    """Redemption caps. Zero means unlimited."""

    total: int = 0
    per_customer: int = 0
    per_day: int = 0


@dataclass(frozen=True)
class UsageStats:
    total_used: int = 0
    total_savings: float = 0.0
    last_used: datetime | None = None


@dataclass(frozen=True)
class Coupon:
    id: str
    branch_id: str
    code: str
    name: str
    discount_type: DiscountType
    discount_value: float
    min_spend: float = 0.0
    max_spend: float = 0.0
    outlets: dict[str, bool] = field(default_factory=dict)
    time_dependent: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_uses: UsageLimits = field(default_factory=UsageLimits)
    days_available: dict[str, bool] = field(default_factory=_all_days)
    service_types: dict[str, bool] = field(default_factory=_all_service_types)
    first_order_only: bool = False
    status: CouponStatus = CouponStatus.ACTIVE
    usage_stats: UsageStats = field(default_factory=UsageStats)

    def __post_init__(self):
        object.__setattr__(self, "start_date", as_utc(self.start_date))
        object.__setattr__(self, "end_date", as_utc(self.end_date))

    @property
    def is_active(self) -> bool:
        return self.status == CouponStatus.ACTIVE

    def is_currently_valid(self, now: datetime) -> bool:
        """Active, and inside its validity window when the coupon is time dependent."""
        if not self.is_active:
            return False
        now = as_utc(now)
        if self.time_dependent:
            if self.start_date is not None and now < self.start_date:
                return False
            if self.end_date is not None and now > self.end_date:
                return False
        return True


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
