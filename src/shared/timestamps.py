"""Timestamp normalisation for records loaded from outside the service.

Stored coupons and price rules may carry naive datetimes. They are
read as UTC so they compare cleanly with the timezone-aware branch clock.
"""

from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
