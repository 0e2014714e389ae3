"""DiscountEngine — coupon eligibility and discount arithmetic.

Validation runs in a fixed order and stops at the first failed check; the
returned reason is shown to the customer as-is:

    1. coupon exists, is active, and is inside its window if time dependent
    2. coupon is enabled for the order's branch (absent branch ⇒ not enabled)
    3. order total >= min spend
    4. max spend is 0 (unbounded) or order total <= max spend
    5. today is enabled in ``days_available``
    6. the delivery method's service type is enabled in ``service_types``

First-order-only coupons are not checked here because that requires the
customer's order history; callers read ``coupon.first_order_only`` and enforce
it themselves. Usage caps are enforced separately by an atomic usage counter.
"""

from dataclasses import dataclass
from datetime import datetime

from promotions.discount.discount import Coupon, DiscountType
from shared.service_types import parse_delivery_method, service_type_for, weekday_name


@dataclass(frozen=True)
class CouponOrderContext:
    order_total: float
    delivery_method: str | None = None


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class DiscountApplication:
    original_total: float
    discount_amount: float
    new_total: float
    discount_code: str
    discount_name: str


def _money(amount: float) -> float:
    return round(float(amount), 2)


def validate_coupon(
    coupon: Coupon | None,
    context: CouponOrderContext,
    user_id: str | None,
    branch_id: str | None,
    now: datetime,
) -> CouponValidation:
    """Check whether ``coupon`` may be applied to an order; see module docstring for the order of checks."""
    if coupon is None:
        return CouponValidation(False, "Discount code not found")

    if not coupon.is_currently_valid(now):
        return CouponValidation(False, "Discount is not currently active")

    if branch_id is not None and not coupon.outlets.get(str(branch_id), False):
        return CouponValidation(False, "Discount not available at this branch")

    if context.order_total < coupon.min_spend:
        return CouponValidation(False, f"Minimum spend of £{coupon.min_spend:.2f} required")

    if coupon.max_spend > 0 and context.order_total > coupon.max_spend:
        return CouponValidation(False, f"Maximum spend of £{coupon.max_spend:.2f} exceeded")

    if not coupon.days_available.get(weekday_name(now), False):
        return CouponValidation(False, "Discount not available today")

    if context.delivery_method:
        service_type = service_type_for(context.delivery_method)
        if service_type is not None and not coupon.service_types.get(service_type.value, False):
            method = parse_delivery_method(context.delivery_method)
            return CouponValidation(False, f"Discount not available for {method.value}")

    return CouponValidation(True)


def calculate_discount(coupon: Coupon, order_total: float) -> float:
    """Discount amount for ``order_total``; fixed discounts never exceed the total."""
    if coupon.discount_type == DiscountType.PERCENTAGE:
        return _money(order_total * coupon.discount_value / 100)
    return _money(min(coupon.discount_value, order_total))


def apply_discount(coupon: Coupon, order_total: float) -> DiscountApplication:
    """Discount amount plus the resulting total, clamped at zero."""
    amount = calculate_discount(coupon, order_total)
    return DiscountApplication(
        original_total=_money(order_total),
        discount_amount=amount,
        new_total=_money(max(0.0, order_total - amount)),
        discount_code=coupon.code,
        discount_name=coupon.name,
    )


def rank_applicable_coupons(
    coupons,
    context: CouponOrderContext,
    user_id: str | None,
    branch_id: str | None,
    now: datetime,
) -> list[tuple[Coupon, float]]:
    """Valid coupons paired with their discount amount, largest discount first."""
    applicable = [
        (coupon, calculate_discount(coupon, context.order_total))
        for coupon in coupons
        if validate_coupon(coupon, context, user_id, branch_id, now).valid
    ]
    return sorted(applicable, key=lambda pair: pair[1], reverse=True)


class DiscountEngine:
    """The discount rules as an injectable collaborator."""

    def validate(self, coupon, context, user_id, branch_id, now) -> CouponValidation:
        return validate_coupon(coupon, context, user_id, branch_id, now)

    def calculate(self, coupon: Coupon, order_total: float) -> float:
        return calculate_discount(coupon, order_total)

    def apply(self, coupon: Coupon, order_total: float) -> DiscountApplication:
        return apply_discount(coupon, order_total)

    def best_of(self, coupons, context, user_id, branch_id, now):
        ranked = rank_applicable_coupons(coupons, context, user_id, branch_id, now)
        return ranked[0] if ranked else None
