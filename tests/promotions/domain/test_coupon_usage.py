"""Tests for coupon usage caps and the coupon store lifecycle."""

import threading
from dataclasses import replace
from datetime import UTC, date, datetime

import pytest
from promotions.discount.discount import Coupon, CouponStatus, DiscountType, UsageLimits, UsageStats
from promotions.discount.fake_store import InMemoryCouponStore
from promotions.discount.usage import InMemoryUsageCounter

TODAY = date(2024, 5, 7)


def _coupon(**limits):
    return Coupon(
        id="c1",
        branch_id="b1",
        code="save10",
        name="Save",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=10.0,
        outlets={"b1": True},
        max_uses=UsageLimits(**limits),
    )


class TestUsageCaps:
    def test_unlimited_by_default(self):
        counter = InMemoryUsageCounter()
        for _ in range(20):
            assert counter.try_redeem(_coupon(), "u1", TODAY) is None

    def test_total_cap(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(total=2)
        assert counter.try_redeem(coupon, "u1", TODAY) is None
        assert counter.try_redeem(coupon, "u2", TODAY) is None
        assert counter.try_redeem(coupon, "u3", TODAY) == "Discount usage limit reached"

    def test_per_customer_cap(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(per_customer=1)
        assert counter.try_redeem(coupon, "u1", TODAY) is None
        assert counter.try_redeem(coupon, "u1", TODAY) == "You have already used this discount the maximum number of times"
        assert counter.try_redeem(coupon, "u2", TODAY) is None

    def test_per_day_cap_resets_next_day(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(per_day=1)
        assert counter.try_redeem(coupon, None, TODAY) is None
        assert counter.try_redeem(coupon, None, TODAY) == "Discount daily usage limit reached"
        assert counter.try_redeem(coupon, None, date(2024, 5, 8)) is None

    def test_refused_redemption_counts_nothing(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(total=5, per_customer=1)
        counter.try_redeem(coupon, "u1", TODAY)
        counter.try_redeem(coupon, "u1", TODAY)
        assert counter.usage("c1") == 1

    def test_total_cap_counts_recorded_redemptions(self):
        counter = InMemoryUsageCounter()
        coupon = replace(_coupon(total=3), usage_stats=UsageStats(total_used=2))
        assert counter.try_redeem(coupon, "u1", TODAY) is None
        assert counter.try_redeem(coupon, "u2", TODAY) == "Discount usage limit reached"
        assert counter.usage("c1") == 3

    def test_release_frees_capacity(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(total=1)
        counter.try_redeem(coupon, "u1", TODAY)
        counter.release(coupon, "u1", TODAY)
        assert counter.try_redeem(coupon, "u2", TODAY) is None

    def test_concurrent_redemptions_respect_total_cap(self):
        counter = InMemoryUsageCounter()
        coupon = _coupon(total=3)
        barrier = threading.Barrier(10)
        refusals = []

        def redeem(user):
            barrier.wait()
            refusals.append(counter.try_redeem(coupon, user, TODAY))

        threads = [threading.Thread(target=redeem, args=(f"u{i}",)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert refusals.count(None) == 3
        assert counter.usage("c1") == 3


class TestCouponStore:
    def test_lookup_is_case_insensitive(self):
        store = InMemoryCouponStore([_coupon()])
        assert store.find_active_coupon_by_code("b1", " SAVE10 ").id == "c1"

    def test_lookup_is_scoped_to_branch(self):
        store = InMemoryCouponStore([_coupon()])
        assert store.find_active_coupon_by_code("b2", "SAVE10") is None

    def test_inactive_coupon_not_found(self):
        store = InMemoryCouponStore([_coupon()])
        store.change_status("c1", CouponStatus.INACTIVE)
        assert store.find_active_coupon_by_code("b1", "SAVE10") is None

    def test_archived_is_terminal(self):
        store = InMemoryCouponStore([_coupon()])
        store.change_status("c1", CouponStatus.ARCHIVED)
        with pytest.raises(ValueError):
            store.change_status("c1", CouponStatus.ACTIVE)

    def test_record_redemption_updates_stats(self):
        store = InMemoryCouponStore([_coupon()])
        at = datetime(2024, 5, 7, 12, 0, tzinfo=UTC)
        store.record_redemption("c1", 5.0, at)
        store.record_redemption("c1", 2.5, at)

        stats = store.get("c1").usage_stats
        assert stats.total_used == 2
        assert stats.total_savings == 7.5
        assert stats.last_used == at
