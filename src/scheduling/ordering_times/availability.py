"""Ordering availability — whether a branch accepts orders right now.

Callers consult this before starting the order pipeline. Closed dates override
everything else; otherwise the day's allow flag for the service type and its
operating window (inclusive at both ends) decide.
"""

from datetime import date, datetime

from scheduling.ordering_times.ordering_times import ClosedDateType, OrderingTimes
from shared.service_types import ServiceType, service_type_for, weekday_name


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def is_closed_on_date(ordering_times: OrderingTimes, on: date | datetime) -> bool:
    """True if ``on`` matches a single closed date or falls inside a closed range."""
    target = on.date() if isinstance(on, datetime) else on

    for closed in ordering_times.closed_dates:
        if closed.type == ClosedDateType.SINGLE and target == closed.date:
            return True
        if closed.type == ClosedDateType.RANGE and closed.end_date is not None:
            if closed.date <= target <= closed.end_date:
                return True
    return False


def is_ordering_allowed(ordering_times: OrderingTimes | None, service, now: datetime) -> bool:
    """Whether ``service`` (a ServiceType or a delivery method) can be ordered at ``now``."""
    if ordering_times is None:
        return False

    service_type = service if isinstance(service, ServiceType) else service_type_for(service)
    if service_type is None:
        try:
            service_type = ServiceType(service)
        except ValueError:
            return False

    if is_closed_on_date(ordering_times, now):
        return False

    day = ordering_times.weekly_schedule.get(weekday_name(now))
    if day is None or not day.allows(service_type):
        return False

    window = day.window_for(service_type)
    if window is None:
        return False

    current = now.hour * 60 + now.minute
    return _minutes(window.start) <= current <= _minutes(window.end)
