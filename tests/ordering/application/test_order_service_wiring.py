"""Tests for building and installing the process-wide OrderService."""

import pytest
from inventory.stock.memory_store import InMemoryStockStore
from notifications.sink import reset_event_sink
from ordering.order.service import OrderService
from ordering.order.wiring import (
    branch_clock,
    build_order_service,
    configure_order_service,
    get_order_service,
    reset_order_service,
    stock_store_from_env,
    usage_counter_from_env,
)
from promotions.discount.sql_usage import SQLUsageCounter
from promotions.discount.usage import InMemoryUsageCounter


@pytest.fixture(autouse=True)
def _fresh_registry(monkeypatch):
    monkeypatch.delenv("STOCK_STORE", raising=False)
    monkeypatch.delenv("COUPON_USAGE_STORE", raising=False)
    monkeypatch.setenv("EVENT_SINK", "memory")
    reset_event_sink()
    reset_order_service()
    yield
    reset_order_service()
    reset_event_sink()


class TestStockStoreFromEnv:
    def test_memory_is_default(self):
        assert isinstance(stock_store_from_env(), InMemoryStockStore)

    def test_sql_store_is_set_up(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STOCK_STORE", "sql")
        monkeypatch.setenv("STOCK_DATABASE_URI", f"sqlite:///{tmp_path / 'stock.db'}")

        store = stock_store_from_env()

        assert store.get("missing") is None

    def test_unknown_adapter_is_rejected(self, monkeypatch):
        monkeypatch.setenv("STOCK_STORE", "carrier-pigeon")
        with pytest.raises(ValueError):
            stock_store_from_env()


class TestUsageCounterFromEnv:
    def test_memory_is_default(self):
        assert isinstance(usage_counter_from_env(), InMemoryUsageCounter)

    def test_sql_counter_is_set_up(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COUPON_USAGE_STORE", "sql")
        monkeypatch.setenv("COUPON_USAGE_DATABASE_URI", f"sqlite:///{tmp_path / 'usage.db'}")

        counter = usage_counter_from_env()

        assert isinstance(counter, SQLUsageCounter)
        assert counter.usage("c1") == 0

    def test_unknown_adapter_is_rejected(self, monkeypatch):
        monkeypatch.setenv("COUPON_USAGE_STORE", "abacus")
        with pytest.raises(ValueError):
            usage_counter_from_env()

    def test_service_uses_configured_counter(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COUPON_USAGE_STORE", "sql")
        monkeypatch.setenv("COUPON_USAGE_DATABASE_URI", f"sqlite:///{tmp_path / 'usage.db'}")
        assert isinstance(build_order_service().usage_counter, SQLUsageCounter)


class TestOrderServiceRegistry:
    def test_singleton_is_built_once(self):
        service = get_order_service()
        assert isinstance(service, OrderService)
        assert get_order_service() is service

    def test_configured_service_is_returned(self, order_service):
        reset_order_service()
        configure_order_service(order_service)
        assert get_order_service() is order_service

    def test_first_build_configures_logging(self, monkeypatch, restore_logging):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.delenv("LOG_DIR", raising=False)
        restore_logging.handlers = []

        get_order_service()

        assert len(restore_logging.handlers) == 1

    def test_overrides_replace_defaults(self, catalog):
        service = build_order_service(catalog=catalog)
        assert service.catalog is catalog


def test_branch_clock_is_timezone_aware():
    now = branch_clock("Europe/London")()
    assert now.tzinfo is not None
