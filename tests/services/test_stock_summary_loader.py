"""
Tests for StockSummaryLoader and ExpiryAlertLoader.

Covers:
- Per-item fetch isolation with zero fallback
- Fetch cap
- Result ordering
- Alert loading fallbacks
"""

import threading
from decimal import Decimal

import pytest

from inventory_kernel.domain.stock import ExpiryStatus, StockSummary
from inventory_kernel.logging_config import LogContext
from inventory_services.stock_summary_loader import (
    ExpiryAlertLoader,
    StockSummaryLoader,
    SummaryFetchResult,
)
from tests.factories import TODAY, make_alert_row, make_stock_row


class FakeStockSource:
    """In-memory backend; item ids listed in ``failing`` raise."""

    def __init__(self, rows_by_item: dict, failing: set[str] = frozenset()):
        self.rows_by_item = rows_by_item
        self.failing = set(failing)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get_stock_by_item(self, item_id):
        with self._lock:
            self.calls.append(item_id)
        if item_id in self.failing:
            raise ConnectionError(f"backend unavailable for {item_id}")
        return self.rows_by_item.get(item_id, [])


class FakeAlertSource:
    def __init__(self, rows=None, error: Exception | None = None):
        self.rows = rows or []
        self.error = error
        self.requested_days: list[int] = []

    def get_expiry_alerts(self, days_ahead):
        self.requested_days.append(days_ahead)
        if self.error is not None:
            raise self.error
        return self.rows


class TestFanOutIsolation:
    """One failing fetch does not void the others."""

    def setup_method(self):
        self.source = FakeStockSource(
            {
                "a": [make_stock_row("L1", on_hand=10), make_stock_row("L2", on_hand=5)],
                "b": [make_stock_row("L1", on_hand=99)],
                "c": [make_stock_row("L1", on_hand=3)],
            },
            failing={"b"},
        )

    def test_second_of_three_fails(self, log_capture):
        result = StockSummaryLoader(self.source).load(["a", "b", "c"])

        summaries = result.summaries
        assert summaries["a"].total_on_hand == Decimal("15")
        assert summaries["a"].location_count == 2
        assert summaries["b"] == StockSummary.zero()
        assert summaries["c"].total_on_hand == Decimal("3")

        assert [f.item_id for f in result.failures] == ["b"]
        assert "ConnectionError" in result.failures[0].error
        assert not result.all_succeeded

        warnings = log_capture.find("stock_summary_fetch_failed")
        assert len(warnings) == 1
        assert warnings[0]["item_id"] == "b"
        assert warnings[0]["level"] == "WARNING"

    def test_failure_log_carries_caller_context(self, log_capture):
        with LogContext.bind(view_key="catalog", correlation_id="req-7"):
            StockSummaryLoader(self.source).load(["a", "b", "c"])

        warning = log_capture.find("stock_summary_fetch_failed")[0]
        assert warning["view_key"] == "catalog"
        assert warning["correlation_id"] == "req-7"
        assert warning["thread"].startswith("stock-summary")

    def test_results_in_input_order(self):
        result = StockSummaryLoader(self.source, max_workers=3).load(["c", "b", "a"])

        assert [r.item_id for r in result.results] == ["c", "b", "a"]

    def test_malformed_row_isolated(self):
        source = FakeStockSource({"a": [{"onHandQuantity": 1}], "c": [make_stock_row()]})

        result = StockSummaryLoader(source).load(["a", "c"])

        assert [f.item_id for f in result.failures] == ["a"]
        assert "InvalidStockRecordError" in result.failures[0].error
        assert result.summaries["c"].total_on_hand == Decimal("10")

    def test_item_without_rows_is_empty_not_failed(self):
        result = StockSummaryLoader(FakeStockSource({})).load(["x"])

        assert result.all_succeeded
        assert result.summaries["x"].is_empty


class TestFetchCap:
    def test_only_first_n_fetched(self):
        source = FakeStockSource({})
        item_ids = [f"i{n}" for n in range(150)]

        result = StockSummaryLoader(source, fetch_limit=100).load(item_ids)

        assert len(result.results) == 100
        assert sorted(source.calls) == sorted(item_ids[:100])
        assert result.skipped_item_ids == tuple(item_ids[100:])
        assert "i120" not in result.summaries

    def test_empty_input(self):
        source = FakeStockSource({})

        result = StockSummaryLoader(source).load([])

        assert result.results == ()
        assert source.calls == []

    @pytest.mark.parametrize("kwargs", [{"fetch_limit": -1}, {"max_workers": 0}])
    def test_invalid_limits(self, kwargs):
        with pytest.raises(ValueError):
            StockSummaryLoader(FakeStockSource({}), **kwargs)


class TestSummaryFetchResult:
    def test_display_summary_for_failure(self):
        result = SummaryFetchResult(item_id="x", error="boom")

        assert not result.succeeded
        assert result.display_summary == StockSummary.zero()


class TestExpiryAlertLoader:
    def test_rows_parsed(self):
        source = FakeAlertSource([
            make_alert_row("a", 3, expiry_status="critical"),
            make_alert_row("b", None, expiry_date="2024-04-15"),
        ])

        alerts = ExpiryAlertLoader(source).load(30, TODAY)

        assert source.requested_days == [30]
        assert [a.item_id for a in alerts] == ["a", "b"]
        assert alerts[1].days_until_expiry == 45
        assert alerts[1].expiry_status is ExpiryStatus.OK

    def test_source_failure_returns_no_alerts(self, log_capture):
        source = FakeAlertSource(error=TimeoutError("slow backend"))

        assert ExpiryAlertLoader(source).load(30, TODAY) == ()
        assert log_capture.find("expiry_alert_load_failed")[0]["level"] == "ERROR"

    def test_malformed_row_skipped(self, log_capture):
        bad = make_alert_row("a", 3)
        del bad["locationId"]
        source = FakeAlertSource([bad, make_alert_row("b", 4)])

        alerts = ExpiryAlertLoader(source).load(30, TODAY)

        assert [a.item_id for a in alerts] == ["b"]
        assert log_capture.find("expiry_alert_row_skipped")

    def test_bad_location_and_day_values_skipped(self, log_capture):
        string_location = make_alert_row("a", 3)
        del string_location["locationId"]
        string_location["location"] = "WH-1"
        source = FakeAlertSource([
            string_location,
            make_alert_row("b", float("inf")),
            make_alert_row("c", 5.9),
            make_alert_row("d", 4),
        ])

        alerts = ExpiryAlertLoader(source).load(30, TODAY)

        assert [a.item_id for a in alerts] == ["d"]
        skipped = log_capture.find("expiry_alert_row_skipped")
        assert [r["item_id"] for r in skipped] == ["a", "b", "c"]
        assert {r["error_code"] for r in skipped} == {"INVALID_STOCK_RECORD"}

    def test_non_object_row_skipped(self, log_capture):
        source = FakeAlertSource(["not-a-row", make_alert_row("d", 4)])

        alerts = ExpiryAlertLoader(source).load(30, TODAY)

        assert [a.item_id for a in alerts] == ["d"]
        assert log_capture.find("expiry_alert_row_skipped")[0]["item_id"] is None


class TestMalformedStockRows:
    def test_stock_row_with_string_location_fails_only_that_item(self):
        source = FakeStockSource({
            "a": [{"locationId": "L1", "location": "WH-1", "onHandQuantity": 2}],
            "b": [make_stock_row("L1", on_hand=6)],
        })

        result = StockSummaryLoader(source).load(["a", "b"])

        assert [f.item_id for f in result.failures] == ["a"]
        assert "InvalidStockRecordError" in result.failures[0].error
        assert result.summaries["b"].total_on_hand == Decimal("6")
