"""Order service registry — the process-wide OrderService.

Builds the service from in-memory adapters by default. The stock store, the
coupon usage counter and the event transport are chosen from the environment:

    STOCK_STORE=memory|sql          STOCK_DATABASE_URI=sqlite:///stock.db
    COUPON_USAGE_STORE=memory|sql   COUPON_USAGE_DATABASE_URI=sqlite:///coupon_usage.db
    EVENT_SINK=memory|redis         REDIS_URL=redis://localhost:6379/0
    BRANCH_TIMEZONE=Europe/London

Tests (and applications with real catalogue/coupon/schedule adapters) install
their own instance with ``configure_order_service``.
"""

import os
from datetime import datetime
from zoneinfo import ZoneInfo

import structlog

from catalogue.product.fake_catalog import InMemoryCatalog
from inventory.stock.ledger import StockLedger
from notifications.sink import get_event_sink
from ordering.order.notifier import OrderEventNotifier
from ordering.order.service import OrderService
from ordering.utils.logging import ensure_logging
from promotions.discount.fake_store import InMemoryCouponStore
from promotions.discount.usage import InMemoryUsageCounter
from scheduling.ordering_times.fake_store import InMemoryScheduleStore

logger = structlog.get_logger(__name__)

_service_instance = None


def branch_clock(timezone_name: str | None = None):
    """A clock reading local time for the branch timezone (weekday and opening hours are local)."""
    zone = ZoneInfo(timezone_name or os.environ.get("BRANCH_TIMEZONE", "Europe/London"))

    def now() -> datetime:
        return datetime.now(zone)

    return now


def stock_store_from_env():
    adapter = os.environ.get("STOCK_STORE", "memory")
    if adapter == "memory":
        from inventory.stock.memory_store import InMemoryStockStore

        return InMemoryStockStore()
    if adapter == "sql":
        from inventory.stock.sql_store import SQLStockStore

        store = SQLStockStore(os.environ.get("STOCK_DATABASE_URI", "sqlite:///stock.db"))
        store.setup()
        return store
    raise ValueError(f"Unknown stock store: {adapter}")


def usage_counter_from_env():
    adapter = os.environ.get("COUPON_USAGE_STORE", "memory")
    if adapter == "memory":
        return InMemoryUsageCounter()
    if adapter == "sql":
        from promotions.discount.sql_usage import SQLUsageCounter

        counter = SQLUsageCounter(os.environ.get("COUPON_USAGE_DATABASE_URI", "sqlite:///coupon_usage.db"))
        counter.setup()
        return counter
    raise ValueError(f"Unknown coupon usage store: {adapter}")


def build_order_service(
**overrides) -> OrderService:
    """Assemble an OrderService, taking any collaborator from ``overrides``."""
    clock = overrides.pop("clock", None) or branch_clock()
    defaults = {
        "catalog": InMemoryCatalog(clock=clock),
        "stock_ledger": StockLedger(stock_store_from_env()),
        "coupon_store": InMemoryCouponStore(),
        "usage_counter": usage_counter_from_env(),
        "schedule_store": InMemoryScheduleStore(),
        "notifier": OrderEventNotifier(get_event_sink()),
    }
    defaults.update(overrides)
    logger.debug("Order service built", collaborators=sorted(defaults))
    return OrderService(clock=clock, **defaults)


def get_order_service() -> OrderService:
    """Return the configured OrderService (singleton)."""
    global _service_instance
    if _service_instance is None:
        ensure_logging()
        _service_instance = build_order_service()
    return _service_instance


def configure_order_service(service: OrderService) -> OrderService:
    global _service_instance
    _service_instance = service
    return service


def reset_order_service():
    """Reset the service singleton (useful for testing)."""
    global _service_instance
    _service_instance = None
