"""
Tests for inventory_kernel.logging_config.

Each test installs a fresh JSON handler on the ``inventory_kernel`` logger
through ``configure_logging`` and reads back the lines it wrote.
"""

import json
import logging
import threading
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from inventory_kernel.domain.stock import ExpiryStatus
from inventory_kernel.exceptions import InsufficientStockError, InvalidStockRecordError
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


class JsonLines:
    def __init__(self) -> None:
        self.stream = StringIO()

    def __iter__(self):
        for line in self.stream.getvalue().splitlines():
            if line:
                yield json.loads(line)

    def only(self) -> dict:
        (record,) = list(self)
        return record


@pytest.fixture
def output():
    """Configure logging into a buffer; restore a clean state afterwards."""
    reset_logging()
    LogContext.clear()
    lines = JsonLines()
    configure_logging(level=logging.INFO, stream=lines.stream)
    yield lines
    LogContext.clear()
    reset_logging()


class TestRecordShape:
    """One JSON object per record with the standard keys first."""

    def test_standard_keys(self, output):
        get_logger("engines.aggregation").info("stock_aggregated")

        record = output.only()
        assert record["message"] == "stock_aggregated"
        assert record["level"] == "INFO"
        assert record["logger"] == "inventory_kernel.engines.aggregation"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_payload_merged(self, output):
        get_logger("services").warning("stock_summary_fetch_failed", extra={
            "item_id": "bolts",
            "error_type": "ConnectionError",
        })

        record = output.only()
        assert record["item_id"] == "bolts"
        assert record["error_type"] == "ConnectionError"
        assert "levelno" not in record
        assert "thread" not in record

    def test_below_level_dropped(self, output):
        logger = get_logger("engines.filtering")
        logger.debug("items_filtered")
        logger.info("catalog_view_loaded")

        assert [r["message"] for r in output] == ["catalog_view_loaded"]

    def test_stock_values_serialized(self, output):
        request_id = uuid4()
        get_logger("engines.expiry").info("expiry_alerts_synthesized", extra={
            "request_id": request_id,
            "quantity": Decimal("12.50"),
            "reference_date": date(2024, 3, 1),
            "expiry_status": ExpiryStatus.CRITICAL,
            "locations": {"L2", "L1"},
        })

        record = output.only()
        assert record["request_id"] == str(request_id)
        assert record["quantity"] == "12.50"
        assert record["reference_date"] == "2024-03-01"
        assert record["expiry_status"] == "critical"
        assert record["locations"] == ["L1", "L2"]

    def test_worker_thread_named(self, output):
        worker = threading.Thread(
            target=lambda: get_logger("services").info("from_worker"),
            name="stock-summary_0",
        )
        worker.start()
        worker.join()

        assert output.only()["thread"] == "stock-summary_0"


class TestExceptionFields:
    def test_plain_exception(self, output):
        try:
            raise ValueError("bad threshold")
        except ValueError:
            get_logger("config").error("config_rejected", exc_info=True)

        record = output.only()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "bad threshold"
        assert "exc_code" not in record
        assert record["traceback"].startswith("Traceback")

    def test_kernel_error_code_and_attributes(self, output):
        try:
            raise InsufficientStockError("item-1", "loc-a", "12", "5")
        except InsufficientStockError:
            get_logger("engines.fefo").error("allocation_error", exc_info=True)

        record = output.only()
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert record["exc_item_id"] == "item-1"
        assert record["exc_location_id"] == "loc-a"
        assert record["exc_requested_quantity"] == "12"

    def test_record_error_field(self, output):
        try:
            raise InvalidStockRecordError("locationId", "required", "bolts")
        except InvalidStockRecordError:
            get_logger("services").warning("row_rejected", exc_info=True)

        record = output.only()
        assert record["exc_code"] == "INVALID_STOCK_RECORD"
        assert record["exc_field"] == "locationId"


class TestLogContext:
    """Request-scoped fields."""

    def test_fields_appear_on_records(self, output):
        LogContext.set(correlation_id="req-1", view_key="item-1/stock")
        get_logger("services").info("view_load_started")

        record = output.only()
        assert record["correlation_id"] == "req-1"
        assert record["view_key"] == "item-1/stock"
        assert "actor_id" not in record

    def test_declaration_order(self):
        LogContext.set(trace_id="t", actor_id="a", correlation_id="c")

        assert list(LogContext.get_all()) == ["correlation_id", "actor_id", "trace_id"]

    def test_unknown_and_none_ignored(self):
        LogContext.set(branch_id="b-1")
        LogContext.set(branch_id=None, warehouse="w")

        assert LogContext.get_all() == {"branch_id": "b-1"}

    def test_values_stringified(self):
        LogContext.set(actor_id=42)

        assert LogContext.get_all() == {"actor_id": "42"}

    def test_nested_bind_restores_each_level(self):
        LogContext.set(view_key="catalog")
        with LogContext.bind(view_key="item-1/stock", correlation_id="c1"):
            with LogContext.bind(view_key="item-1/batches"):
                assert LogContext.get_all()["view_key"] == "item-1/batches"
                assert LogContext.get_all()["correlation_id"] == "c1"
            assert LogContext.get_all()["view_key"] == "item-1/stock"

        assert LogContext.get_all() == {"view_key": "catalog"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(trace_id="t-9"):
                raise RuntimeError("load failed")

        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_second_call_ignored(self, output):
        kernel_logger = logging.getLogger("inventory_kernel")
        handlers_before = list(kernel_logger.handlers)
        other = StringIO()
        configure_logging(stream=other)
        get_logger("x").info("once")

        assert kernel_logger.handlers == handlers_before
        assert sum(isinstance(h.formatter, StructuredFormatter) for h in kernel_logger.handlers) == 1
        assert other.getvalue() == ""

    def test_level_by_name(self):
        reset_logging()
        stream = StringIO()
        configure_logging(level="debug", stream=stream)
        try:
            get_logger("engines").debug("debug_visible")
            assert json.loads(stream.getvalue())["message"] == "debug_visible"
        finally:
            reset_logging()

    def test_custom_handler_gets_formatter(self):
        reset_logging()
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream))
        try:
            get_logger("config").info("INVENTORY_CONFIG_TRACE", extra={"config_id": "default"})
            assert json.loads(stream.getvalue())["config_id"] == "default"
        finally:
            reset_logging()

    def test_not_propagated_to_root(self, output):
        assert logging.getLogger("inventory_kernel").propagate is False

    def test_engine_trace_emitted(self, output):
        from inventory_engines.aggregation import aggregate
        from tests.factories import make_record

        aggregate(records=[make_record()])

        traces = [r for r in output if r["message"] == "INVENTORY_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "stock_aggregation"
        assert len(traces[0]["input_fingerprint"]) == 16
