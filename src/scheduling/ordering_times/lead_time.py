"""LeadTimeEstimator — minutes from order placement to completion.

Lead time is informational and never blocks an order. Any gap or defect in
the branch schedule (no schedule, no entry for today, unknown delivery method,
non-numeric lead time) yields ``DEFAULT_LEAD_TIME_MINUTES``.
"""

from datetime import datetime

import structlog

from scheduling.ordering_times.ordering_times import OrderingTimes
from shared.service_types import service_type_for, weekday_name

logger = structlog.get_logger(__name__)

DEFAULT_LEAD_TIME_MINUTES = 45


def _numeric(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def estimate_lead_time(ordering_times: OrderingTimes | None, delivery_method, now: datetime) -> int:
    """Lead time in minutes for ``delivery_method`` on ``now``'s weekday."""
    if ordering_times is None:
        return DEFAULT_LEAD_TIME_MINUTES

    try:
        service_type = service_type_for(delivery_method)
        if service_type is None:
            return DEFAULT_LEAD_TIME_MINUTES

        day = ordering_times.weekly_schedule.get(weekday_name(now))
        if day is None:
            return DEFAULT_LEAD_TIME_MINUTES

        lead_time = day.settings_for(service_type).lead_time
        if not _numeric(lead_time):
            return DEFAULT_LEAD_TIME_MINUTES
        return int(lead_time)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning(
            "Malformed ordering schedule, using default lead time",
            branch_id=getattr(ordering_times, "branch_id", None),
            error=str(exc),
        )
        return DEFAULT_LEAD_TIME_MINUTES
