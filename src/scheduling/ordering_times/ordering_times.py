"""Branch ordering schedule — weekly service settings and closed dates.

One OrderingTimes record exists per branch. ``weekly_schedule`` is keyed by
lowercase weekday name. Each day carries allow flags per service type, a
default operating window, and per-service settings (lead time in minutes and
an optional custom window).

Schedules arrive from the schedule store as documents; ``from_document`` maps
the stored camelCase layout onto these value types. Lead times are kept as
given, so a malformed value surfaces at estimation time, where it degrades to
the default rather than failing.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from shared.service_types import ServiceType


class ClosedDateType(Enum):
    SINGLE = "single"
    RANGE = "range"


@dataclass(frozen=True)
class TimeWindow:
    start: str  # "HH:MM"
    end: str  # "HH:MM"


@dataclass(frozen=True)
class ServiceSettings:
    lead_time: object = None
    use_different_times: bool = False
    custom_times: TimeWindow | None = None
    displayed_time: str | None = None


@dataclass(frozen=True)
class DaySettings:
    is_collection_allowed: bool = False
    is_delivery_allowed: bool = False
    is_table_ordering_allowed: bool = False
    default_times: TimeWindow | None = None
    collection: ServiceSettings = field(default_factory=ServiceSettings)
    delivery: ServiceSettings = field(default_factory=ServiceSettings)
    table_ordering: ServiceSettings = field(default_factory=ServiceSettings)

    def allows(self, service_type: ServiceType) -> bool:
        if service_type == ServiceType.COLLECTION:
            return self.is_collection_allowed
        if service_type == ServiceType.DELIVERY:
            return self.is_delivery_allowed
        return self.is_table_ordering_allowed

    def settings_for(self, service_type: ServiceType) -> ServiceSettings:
        if service_type == ServiceType.COLLECTION:
            return self.collection
        if service_type == ServiceType.DELIVERY:
            return self.delivery
        return self.table_ordering

    def window_for(self, service_type: ServiceType) -> TimeWindow | None:
        """Operating window for a service; collection always uses the default times."""
        settings = self.settings_for(service_type)
        if service_type != ServiceType.COLLECTION and settings.use_different_times:
            return settings.custom_times
        return self.default_times


@dataclass(frozen=True)
class ClosedDate:
    date: date
    type: ClosedDateType = ClosedDateType.SINGLE
    end_date: date | None = None
    reason: str = "Closed"


@dataclass(frozen=True)
class OrderingTimes:
    branch_id: str
    weekly_schedule: dict[str, DaySettings] = field(default_factory=dict)
    closed_dates: tuple[ClosedDate, ...] = ()

    @classmethod
    def from_document(cls, document: dict) -> "OrderingTimes":
        """Build from a stored schedule document (camelCase keys)."""
        schedule = {
            day.lower(): _day_from_document(settings)
            for day, settings in (document.get("weeklySchedule") or {}).items()
            if settings is not None
        }
        closed = tuple(_closed_date_from_document(entry) for entry in document.get("closedDates") or ())
        return cls(branch_id=str(document["branchId"]), weekly_schedule=schedule, closed_dates=closed)


def _window(data) -> TimeWindow | None:
    if not data or not data.get("start") or not data.get("end"):
        return None
    return TimeWindow(start=data["start"], end=data["end"])


def _service(data) -> ServiceSettings:
    data = data or {}
    return ServiceSettings(
        lead_time=data.get("leadTime"),
        use_different_times=bool(data.get("useDifferentTimes", False)),
        custom_times=_window(data.get("customTimes")),
        displayed_time=data.get("displayedTime"),
    )


def _day_from_document(data: dict) -> DaySettings:
    return DaySettings(
        is_collection_allowed=bool(data.get("isCollectionAllowed", False)),
        is_delivery_allowed=bool(data.get("isDeliveryAllowed", False)),
        is_table_ordering_allowed=bool(data.get("isTableOrderingAllowed", False)),
        default_times=_window(data.get("defaultTimes")),
        collection=_service(data.get("collection")),
        delivery=_service(data.get("delivery")),
        table_ordering=_service(data.get("tableOrdering")),
    )


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def _closed_date_from_document(data: dict) -> ClosedDate:
    closed_type = ClosedDateType(data.get("type", ClosedDateType.SINGLE.value))
    end_date = data.get("endDate")
    return ClosedDate(
        date=_as_date(data["date"]),
        type=closed_type,
        end_date=_as_date(end_date) if end_date else None,
        reason=data.get("reason") or "Closed",
    )
