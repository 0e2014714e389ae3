"""Effective price resolution for catalogue products.

``resolve_price`` applies the first active rule it is given. Which rules are
"current" and in what order they are considered is decided upstream by
``current_price_changes``; catalog adapters must call it (or an equivalent
query) before handing rules to the resolver.

Tie-break: when several rules are current at once, the most recently created
rule comes first. Rules without a creation timestamp sort last, and rules with
equal timestamps fall back to their id so the order is deterministic.
"""

from datetime import datetime

import structlog

from catalogue.product.product import PriceChange, PriceChangeType
from shared.service_types import weekday_name
from shared.timestamps import as_utc

logger = structlog.get_logger(__name__)


def _money(amount: float) -> float:
    return round(float(amount), 2)


def resolve_price(base_price: float, price_changes) -> float:
    """Return the effective unit price for ``base_price`` under ``price_changes``.

    Pure function. Only the first entry whose ``active`` flag is set is applied;
    an unknown rule type leaves the base price untouched.
    """
    active = next((change for change in price_changes or () if change.active), None)
    if active is None:
        return _money(base_price)

    change_type = active.type.value if isinstance(active.type, PriceChangeType) else active.type

    if change_type == PriceChangeType.TEMPORARY.value:
        price = active.temp_price if active.temp_price is not None else active.value
    elif change_type in (PriceChangeType.PERMANENT.value, PriceChangeType.FIXED.value):
        price = active.value
    elif change_type == PriceChangeType.INCREASE.value:
        price = base_price + active.value
    elif change_type == PriceChangeType.DECREASE.value:
        price = max(0.0, base_price - active.value)
    else:
        logger.warning(
            "Unknown price change type, using base price",
            price_change_id=active.id,
            change_type=change_type,
        )
        price = base_price

    return _money(price)


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def is_current(change: PriceChange, now: datetime) -> bool:
    """Whether a rule is active and ``now`` falls inside all of its restrictions."""
    if not change.active:
        return False
    now = as_utc(now)
    if change.start_date is not None and now < change.start_date:
        return False
    if change.end_date is not None and now > change.end_date:
        return False
    if change.days_of_week and weekday_name(now) not in change.days_of_week:
        return False
    if change.time_start and change.time_end:
        current = now.hour * 60 + now.minute
        if not _minutes(change.time_start) <= current <= _minutes(change.time_end):
            return False
    return True


def _recency_key(change: PriceChange):
    created = change.created_at.timestamp() if change.created_at is not None else float("-inf")
    return (-created, change.id)


def current_price_changes(price_changes, now: datetime) -> tuple[PriceChange, ...]:
    """Filter rules down to those current at ``now``, most recently created first."""
    return tuple(sorted((c for c in price_changes or () if is_current(c, now)), key=_recency_key))
