"""Tests for logging configuration."""

import io
import json
import logging

import pytest
import structlog
from ordering.utils.logging import configure_logging, ensure_logging, get_log_level


@pytest.fixture()
def production(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.delenv("LOG_DIR", raising=False)


def _lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestLogLevel:
    @pytest.mark.parametrize(
        "env,level",
        [("production", "INFO"), ("development", "DEBUG"), ("test", "WARNING"), ("unknown", "INFO")],
    )
    def test_level_follows_environment(self, monkeypatch, env, level):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", env)
        assert get_log_level() == level

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestConfigureLogging:
    def test_structlog_and_library_records_share_one_format(self, production, restore_logging):
        stream = io.StringIO()
        configure_logging(stream=stream)

        structlog.get_logger("ordering.order.service").info("Order created", order_number="BR-240507-0001")
        logging.getLogger("protean.adapters").warning("Provider reconnected")

        created, reconnected = _lines(stream)
        assert created["event"] == "Order created"
        assert created["order_number"] == "BR-240507-0001"
        assert created["logger"] == "ordering.order.service"
        assert reconnected["event"] == "Provider reconnected"
        assert reconnected["level"] == "warning"
        assert {"timestamp", "level", "logger"} <= created.keys() & reconnected.keys()

    def test_context_is_merged_into_records(self, production, restore_logging):
        stream = io.StringIO()
        configure_logging(stream=stream)

        structlog.contextvars.bind_contextvars(branch_id="b1")
        structlog.get_logger("ordering.test").info("Status changed")

        assert _lines(stream)[0]["branch_id"] == "b1"

    def test_noisy_libraries_are_held_at_warning(self, production, restore_logging):
        stream = io.StringIO()
        configure_logging(stream=stream)

        logging.getLogger("sqlalchemy.engine").info("SELECT 1")

        assert stream.getvalue() == ""

    def test_console_output_is_not_json_outside_production(self, monkeypatch, restore_logging):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.delenv("LOG_DIR", raising=False)
        stream = io.StringIO()
        configure_logging(stream=stream)

        structlog.get_logger("ordering.test").info("Order created")

        assert "Order created" in stream.getvalue()
        assert not stream.getvalue().startswith("{")

    def test_no_file_is_written_without_a_log_dir(self, production, restore_logging):
        configure_logging(stream=io.StringIO())
        assert len(restore_logging.handlers) == 1

    def test_log_dir_from_environment_gets_json_lines(self, production, monkeypatch, tmp_path, restore_logging):
        monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
        configure_logging(stream=io.StringIO())

        structlog.get_logger("ordering.test").info("Order created", branch_id="b1")
        for handler in restore_logging.handlers:
            handler.flush()

        record = json.loads((tmp_path / "logs" / "orders.log").read_text().splitlines()[0])
        assert record["event"] == "Order created"
        assert record["branch_id"] == "b1"


class TestEnsureLogging:
    def test_configures_a_bare_root_logger(self, production, restore_logging):
        restore_logging.handlers = []
        ensure_logging()
        assert len(restore_logging.handlers) == 1

    def test_leaves_existing_handlers_alone(self, production, restore_logging):
        existing = logging.NullHandler()
        restore_logging.handlers = [existing]
        ensure_logging()
        assert restore_logging.handlers == [existing]

    def test_runs_once(self, production, restore_logging):
        restore_logging.handlers = []
        ensure_logging()
        installed = restore_logging.handlers[:]
        ensure_logging()
        assert restore_logging.handlers == installed
