"""Delivery methods and the schedule/coupon service types they map to.

Orders are placed with a delivery method (pickup, delivery, dine_in). Branch
schedules and coupons are configured per service type (collection, delivery,
tableOrdering). Both vocabularies are shared by the ordering, promotions and
scheduling packages.
"""

from enum import Enum


class DeliveryMethod(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    DINE_IN = "dine_in"


class ServiceType(Enum):
    COLLECTION = "collection"
    DELIVERY = "delivery"
    TABLE_ORDERING = "tableOrdering"


_SERVICE_TYPE_FOR_METHOD = {
    DeliveryMethod.PICKUP: ServiceType.COLLECTION,
    DeliveryMethod.DELIVERY: ServiceType.DELIVERY,
    DeliveryMethod.DINE_IN: ServiceType.TABLE_ORDERING,
}

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def parse_delivery_method(value) -> DeliveryMethod | None:
    """Return the DeliveryMethod for an enum member or raw string, or None if unknown."""
    if isinstance(value, DeliveryMethod):
        return value
    try:
        return DeliveryMethod(value)
    except ValueError:
        return None


def service_type_for(delivery_method) -> ServiceType | None:
    """Map a delivery method (enum or raw string) to its service type."""
    method = parse_delivery_method(delivery_method)
    if method is None:
        return None
    return _SERVICE_TYPE_FOR_METHOD[method]


def weekday_name(moment) -> str:
    """Lowercase English weekday name for a date or datetime, independent of locale."""
    return WEEKDAYS[moment.weekday()]
