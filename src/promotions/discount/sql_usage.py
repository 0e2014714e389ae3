"""SQL coupon usage counter — redemption caps in a relational table via SQLAlchemy Core.

One row per (coupon, scope, key): the coupon's overall total, each customer's
count, and each day's count. A redemption increments every row that applies
inside one transaction, each with ``UPDATE ... WHERE used < :cap``. If any cap
is already reached that update matches no row and the whole transaction is
rolled back, so concurrent processes cannot over-redeem a coupon.

A coupon's total row is created from ``usage_stats.total_used`` the first time
it is redeemed here, so redemptions recorded before the table existed count.
"""

from datetime import date

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from promotions.discount.discount import Coupon
from promotions.discount.usage import (
    CUSTOMER_LIMIT_REACHED,
    DAILY_LIMIT_REACHED,
    TOTAL_LIMIT_REACHED,
    CouponUsageCounter,
)

logger = structlog.get_logger(__name__)

metadata = MetaData()

coupon_usage = Table(
    "coupon_usage",
    metadata,
    Column("coupon_id", String(64), primary_key=True),
    Column("scope", String(16), primary_key=True),
    Column("scope_key", String(64), primary_key=True),
    Column("used", Integer, nullable=False, default=0),
)

TOTAL = "total"
CUSTOMER = "customer"
DAY = "day"


class _CapReached(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _scopes(coupon: Coupon, user_id: str | None, on: date):
    """(scope, key, cap, refusal reason) for every counter a redemption moves."""
    limits = coupon.max_uses
    scopes = [(TOTAL, "all", limits.total, TOTAL_LIMIT_REACHED)]
    if user_id:
        scopes.append((CUSTOMER, str(user_id), limits.per_customer, CUSTOMER_LIMIT_REACHED))
    scopes.append((DAY, on.isoformat(), limits.per_day, DAILY_LIMIT_REACHED))
    return scopes


def _row(coupon_id: str, scope: str, key: str):
    return (
        coupon_usage.c.coupon_id == coupon_id,
        coupon_usage.c.scope == scope,
        coupon_usage.c.scope_key == key,
    )


class SQLUsageCounter(CouponUsageCounter):
    """Usage counter over any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine | str):
        self._engine = create_engine(engine) if isinstance(engine, str) else engine

    def setup(self):
        """Create the usage table if it does not exist."""
        metadata.create_all(self._engine)

    def drop(self):
        metadata.drop_all(self._engine)

    def _ensure_row(self, coupon_id: str, scope: str, key: str, initial: int):
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(select(coupon_usage.c.used).where(*_row(coupon_id, scope, key))).first()
                if existing is None:
                    conn.execute(insert(coupon_usage).values(coupon_id=coupon_id, scope=scope, scope_key=key, used=initial))
        except IntegrityError:
            logger.debug("Usage row created concurrently", coupon_id=coupon_id, scope=scope)

    def try_redeem(self, coupon: Coupon, user_id: str | None, on: date) -> str | None:
        coupon_id = str(coupon.id)
        scopes = _scopes(coupon, user_id, on)
        for scope, key, _, _ in scopes:
            self._ensure_row(coupon_id, scope, key, coupon.usage_stats.total_used if scope == TOTAL else 0)

        try:
            with self._engine.begin() as conn:
                for scope, key, cap, reason in scopes:
                    statement = update(coupon_usage).where(*_row(coupon_id, scope, key))
                    if cap:
                        statement = statement.where(coupon_usage.c.used < cap)
                    result = conn.execute(statement.values(used=coupon_usage.c.used + 1))
                    if result.rowcount == 0:
                        raise _CapReached(reason)
        except _CapReached as refused:
            logger.info("Coupon redemption refused", coupon_id=coupon_id, reason=refused.reason)
            return refused.reason
        return None

    def release(self, coupon: Coupon, user_id: str | None, on: date) -> None:
        coupon_id = str(coupon.id)
        with self._engine.begin() as conn:
            for scope, key, _, _ in _scopes(coupon, user_id, on):
                conn.execute(
                    update(coupon_usage)
                    .where(*_row(coupon_id, scope, key), coupon_usage.c.used > 0)
                    .values(used=coupon_usage.c.used - 1)
                )

    def usage(self, coupon_id: str) -> int:
        with self._engine.connect() as conn:
            used = conn.execute(select(coupon_usage.c.used).where(*_row(str(coupon_id), TOTAL, "all"))).scalar()
        return used or 0
