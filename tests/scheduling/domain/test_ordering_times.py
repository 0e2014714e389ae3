"""Tests for lead-time estimation and ordering availability."""

from datetime import UTC, date, datetime

import pytest
from scheduling.ordering_times.availability import is_closed_on_date, is_ordering_allowed
from scheduling.ordering_times.lead_time import DEFAULT_LEAD_TIME_MINUTES, estimate_lead_time
from scheduling.ordering_times.ordering_times import (
    DaySettings,
    OrderingTimes,
    ServiceSettings,
)
from shared.service_types import ServiceType

TUESDAY = datetime(2024, 5, 7, 12, 30, tzinfo=UTC)
WEDNESDAY = datetime(2024, 5, 8, 12, 30, tzinfo=UTC)


@pytest.fixture()
def document():
    return {
        "branchId": "b1",
        "weeklySchedule": {
            "Tuesday": {
                "isCollectionAllowed": True,
                "isDeliveryAllowed": True,
                "isTableOrderingAllowed": False,
                "defaultTimes": {"start": "11:00", "end": "22:00"},
                "collection": {"leadTime": 20},
                "delivery": {
                    "leadTime": 30,
                    "useDifferentTimes": True,
                    "customTimes": {"start": "17:00", "end": "21:30"},
                },
                "tableOrdering": {"leadTime": 0},
            },
            "wednesday": {
                "isCollectionAllowed": True,
                "defaultTimes": {"start": "11:00", "end": "12:30"},
                "collection": {"leadTime": "soon"},
                "delivery": {"leadTime": True},
            },
        },
        "closedDates": [
            {"date": "2024-12-25", "type": "single", "reason": "Christmas"},
            {"date": "2024-08-01", "type": "range", "endDate": "2024-08-14"},
        ],
    }


@pytest.fixture()
def ordering_times(document):
    return OrderingTimes.from_document(document)


class TestFromDocument:
    def test_weekday_keys_are_lowercased(self, ordering_times):
        assert set(ordering_times.weekly_schedule) == {"tuesday", "wednesday"}

    def test_service_settings(self, ordering_times):
        delivery = ordering_times.weekly_schedule["tuesday"].delivery
        assert delivery.lead_time == 30
        assert delivery.use_different_times is True
        assert delivery.custom_times.start == "17:00"

    def test_closed_dates(self, ordering_times):
        assert ordering_times.closed_dates[0].date == date(2024, 12, 25)
        assert ordering_times.closed_dates[1].end_date == date(2024, 8, 14)


class TestEstimateLeadTime:
    def test_tuesday_delivery(self, ordering_times):
        assert estimate_lead_time(ordering_times, "delivery", TUESDAY) == 30

    def test_pickup_uses_collection_settings(self, ordering_times):
        assert estimate_lead_time(ordering_times, "pickup", TUESDAY) == 20

    def test_zero_lead_time_is_kept(self, ordering_times):
        assert estimate_lead_time(ordering_times, "dine_in", TUESDAY) == 0

    def test_no_schedule(self):
        assert estimate_lead_time(None, "delivery", TUESDAY) == DEFAULT_LEAD_TIME_MINUTES

    def test_no_entry_for_the_day(self, ordering_times):
        thursday = datetime(2024, 5, 9, 12, 0, tzinfo=UTC)
        assert estimate_lead_time(ordering_times, "delivery", thursday) == DEFAULT_LEAD_TIME_MINUTES

    def test_unknown_delivery_method(self, ordering_times):
        assert estimate_lead_time(ordering_times, "drone", TUESDAY) == DEFAULT_LEAD_TIME_MINUTES

    @pytest.mark.parametrize("method", ["pickup", "delivery"])
    def test_malformed_lead_time(self, ordering_times, method):
        assert estimate_lead_time(ordering_times, method, WEDNESDAY) == DEFAULT_LEAD_TIME_MINUTES

    def test_missing_service_settings(self, ordering_times):
        assert estimate_lead_time(ordering_times, "dine_in", WEDNESDAY) == DEFAULT_LEAD_TIME_MINUTES

    def test_schedule_that_is_not_a_schedule(self):
        broken = OrderingTimes(branch_id="b1", weekly_schedule={"tuesday": "closed"})
        assert estimate_lead_time(broken, "delivery", TUESDAY) == DEFAULT_LEAD_TIME_MINUTES


class TestClosedDates:
    def test_single_date(self, ordering_times):
        assert is_closed_on_date(ordering_times, date(2024, 12, 25))
        assert not is_closed_on_date(ordering_times, date(2024, 12, 26))

    @pytest.mark.parametrize("day", [1, 7, 14])
    def test_range_is_inclusive(self, ordering_times, day):
        assert is_closed_on_date(ordering_times, date(2024, 8, day))

    def test_outside_range(self, ordering_times):
        assert not is_closed_on_date(ordering_times, date(2024, 8, 15))


class TestIsOrderingAllowed:
    def test_no_schedule_means_closed(self):
        assert not is_ordering_allowed(None, "pickup", TUESDAY)

    def test_collection_inside_default_window(self, ordering_times):
        assert is_ordering_allowed(ordering_times, ServiceType.COLLECTION, TUESDAY)

    def test_delivery_uses_custom_window(self, ordering_times):
        assert not is_ordering_allowed(ordering_times, "delivery", TUESDAY)
        evening = datetime(2024, 5, 7, 21, 30, tzinfo=UTC)
        assert is_ordering_allowed(ordering_times, "delivery", evening)

    def test_service_not_allowed_that_day(self, ordering_times):
        assert not is_ordering_allowed(ordering_times, "dine_in", TUESDAY)

    def test_window_end_is_inclusive(self, ordering_times):
        assert is_ordering_allowed(ordering_times, "collection", WEDNESDAY)

    def test_closed_date_overrides_schedule(self):
        tuesday_closed = datetime(2024, 12, 24, 12, 0, tzinfo=UTC)
        schedule = OrderingTimes.from_document(
            {
                "branchId": "b1",
                "weeklySchedule": {
                    "tuesday": {"isCollectionAllowed": True, "defaultTimes": {"start": "09:00", "end": "17:00"}}
                },
                "closedDates": [{"date": "2024-12-24"}],
            }
        )
        assert not is_ordering_allowed(schedule, "pickup", tuesday_closed)

    def test_custom_times_ignored_without_flag(self):
        day = DaySettings(
            is_delivery_allowed=True,
            default_times=None,
            delivery=ServiceSettings(lead_time=10, use_different_times=False),
        )
        schedule = OrderingTimes(branch_id="b1", weekly_schedule={"tuesday": day})
        assert not is_ordering_allowed(schedule, "delivery", TUESDAY)
