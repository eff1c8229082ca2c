"""
Tests for the stock status classifier.

Covers:
- The three buckets and their boundaries
- Reorder point absent, zero, below and above stock
- Negative and NaN totals
"""

from decimal import Decimal, InvalidOperation

import pytest

from inventory_engines.stock_status import classify_stock_status, classify_summary
from inventory_kernel.domain.stock import StockStatus, StockSummary


class TestClassifyStockStatus:
    """Tests for classify_stock_status."""

    def test_zero_is_out_of_stock(self):
        assert classify_stock_status(Decimal("0")) is StockStatus.OUT_OF_STOCK

    def test_zero_is_out_of_stock_even_with_reorder_point(self):
        assert classify_stock_status(0, reorder_point=10) is StockStatus.OUT_OF_STOCK

    def test_positive_without_reorder_point_is_in_stock(self):
        assert classify_stock_status(Decimal("0.001")) is StockStatus.IN_STOCK

    def test_below_reorder_point_is_low(self):
        assert classify_stock_status(4, reorder_point=5) is StockStatus.LOW_STOCK

    def test_at_reorder_point_is_in_stock(self):
        assert classify_stock_status(5, reorder_point=5) is StockStatus.IN_STOCK

    def test_zero_reorder_point_never_low(self):
        assert classify_stock_status(1, reorder_point=0) is StockStatus.IN_STOCK

    @pytest.mark.parametrize(
        "on_hand,reorder_point,expected",
        [
            ("10", None, StockStatus.IN_STOCK),
            ("10", "5", StockStatus.IN_STOCK),
            ("10", "15", StockStatus.LOW_STOCK),
            ("0", "15", StockStatus.OUT_OF_STOCK),
            ("0.5", "1", StockStatus.LOW_STOCK),
        ],
    )
    def test_table(self, on_hand, reorder_point, expected):
        assert classify_stock_status(on_hand, reorder_point) is expected

    def test_negative_total_rejected(self, log_capture):
        with pytest.raises(ValueError):
            classify_stock_status(Decimal("-1"))

        assert log_capture.find("stock_status_negative_total")

    def test_nan_total_raises_invalid_operation(self):
        with pytest.raises(InvalidOperation):
            classify_stock_status(Decimal("NaN"))


class TestClassifySummary:
    def test_uses_total_on_hand(self):
        summary = StockSummary(total_on_hand=Decimal("3"), location_count=1)

        assert classify_summary(summary, reorder_point=5) is StockStatus.LOW_STOCK

    def test_zero_summary_out_of_stock(self):
        assert classify_summary(StockSummary.zero()) is StockStatus.OUT_OF_STOCK
