import logging
from datetime import UTC, datetime

import pytest
import structlog
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from catalogue.product.fake_catalog import InMemoryCatalog
from catalogue.product.product import Product
from inventory.stock.ledger import StockLedger
from inventory.stock.memory_store import InMemoryStockStore
from inventory.stock.store_port import StockRecord
from notifications.sink.recording import RecordingEventSink
from ordering.order.context import BranchContext, Role
from ordering.order.notifier import OrderEventNotifier
from ordering.order.service import OrderService
from ordering.order.wiring import configure_order_service, reset_order_service
from ordering.utils import logging as logging_setup
from promotions.discount.discount import Coupon, DiscountType, UsageLimits
from promotions.discount.fake_store import InMemoryCouponStore
from promotions.discount.usage import InMemoryUsageCounter
from scheduling.ordering_times.fake_store import InMemoryScheduleStore

# A Tuesday lunchtime
NOW = datetime(2024, 5, 7, 12, 30, tzinfo=UTC)


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def catalog(clock):
    return InMemoryCatalog(
        [
            Product(id="burger", branch_id="b1", name="Burger", price=10.0),
            Product(id="fries", branch_id="b1", name="Fries", price=3.5),
            Product(id="salad", branch_id="b1", name="Salad", price=25.0),
            Product(id="soup", branch_id="b1", name="Soup", price=4.0, is_available=False),
            Product(id="sundae", branch_id="b1", name="Sundae", price=5.0, delivery=False),
            Product(id="pizza", branch_id="b2", name="Pizza", price=12.0),
        ],
        clock=clock,
    )


@pytest.fixture()
def stock_store():
    return InMemoryStockStore(
        [
            StockRecord(product_id="burger", branch_id="b1", quantity=10, product_name="Burger", low_stock_threshold=2),
            StockRecord(product_id="fries", branch_id="b1", quantity=1, product_name="Fries"),
            StockRecord(product_id="sundae", branch_id="b1", quantity=5, product_name="Sundae"),
        ]
    )


@pytest.fixture()
def coupon_store():
    def coupon(coupon_id, code, discount_type, value, **kwargs):
        return Coupon(
            id=coupon_id,
            branch_id="b1",
            code=code,
            name=code.title(),
            discount_type=discount_type,
            discount_value=value,
            outlets={"b1": True},
            **kwargs,
        )

    return InMemoryCouponStore(
        [
            coupon("c-save10", "SAVE10", DiscountType.PERCENTAGE, 10.0),
            coupon("c-min20", "MIN20", DiscountType.FIXED, 5.0, min_spend=20.0),
            coupon("c-first", "FIRST", DiscountType.FIXED, 3.0, first_order_only=True),
            coupon("c-once", "ONCE", DiscountType.FIXED, 2.0, max_uses=UsageLimits(total=1)),
            coupon("c-huge", "HUGE", DiscountType.FIXED, 500.0),
        ]
    )


@pytest.fixture()
def usage_counter():
    return InMemoryUsageCounter()


@pytest.fixture()
def schedule_store():
    store = InMemoryScheduleStore()
    store.add_document(
        {
            "branchId": "b1",
            "weeklySchedule": {
                "tuesday": {
                    "isCollectionAllowed": True,
                    "isDeliveryAllowed": True,
                    "isTableOrderingAllowed": True,
                    "defaultTimes": {"start": "11:00", "end": "22:00"},
                    "collection": {"leadTime": 20},
                    "delivery": {"leadTime": 30},
                    "tableOrdering": {"leadTime": 0},
                }
            },
        }
    )
    return store


@pytest.fixture()
def sink():
    return RecordingEventSink()


@pytest.fixture()
def stock_ledger(stock_store):
    return StockLedger(stock_store)


@pytest.fixture()
def order_service(catalog, stock_ledger, coupon_store, usage_counter, schedule_store, sink, clock):
    service = OrderService(
        catalog=catalog,
        stock_ledger=stock_ledger,
        coupon_store=coupon_store,
        usage_counter=usage_counter,
        schedule_store=schedule_store,
        notifier=OrderEventNotifier(sink),
        clock=clock,
    )
    configure_order_service(service)
    yield service
    reset_order_service()


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------
@pytest.fixture()
def guest():
    return BranchContext.guest()


@pytest.fixture()
def customer():
    return BranchContext.customer("user-1")


@pytest.fixture()
def manager():
    return BranchContext.staff(Role.MANAGER, "b1", "mgr-1")


@pytest.fixture()
def staff():
    return BranchContext.staff(Role.STAFF, "b1", "staff-1")


@pytest.fixture()
def other_branch_admin():
    return BranchContext.staff(Role.ADMIN, "b2", "admin-2")


@pytest.fixture()
def superadmin():
    return BranchContext(role=Role.SUPERADMIN, user_id="root")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
@pytest.fixture()
def restore_logging(monkeypatch):
    """Put the root logger and structlog back as they were after the test."""
    monkeypatch.setattr(logging_setup, "_configured", False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers, root.level = handlers, level
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
