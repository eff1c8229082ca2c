"""
Module: inventory_engines.stock_status
Responsibility:
    Classify an item's total on-hand quantity as in-stock, low-stock or
    out-of-stock relative to its reorder point.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - OUT_OF_STOCK iff total_on_hand == 0 (exactly zero).
    - LOW_STOCK iff total_on_hand > 0, a reorder point is defined and
      total_on_hand < reorder_point.
    - IN_STOCK for every other positive total, including items without a
      reorder point.
    - The three buckets are exclusive and exhaustive over total_on_hand >= 0.

Failure modes:
    - ValueError for a negative total (outside the classification domain).
    - decimal.InvalidOperation for a NaN total; callers validate first.
"""

from __future__ import annotations

from decimal import Decimal

from inventory_kernel.domain.stock import StockStatus, StockSummary
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.stock_status")

_ZERO = Decimal("0")


def _as_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def classify_stock_status(
    total_on_hand: Decimal | int | str,
    reorder_point: Decimal | int | str | None = None,
) -> StockStatus:
    """
    Classify a total on-hand quantity.

    Args:
        total_on_hand: Summed on-hand quantity across locations (>= 0).
        reorder_point: Threshold below which positive stock is low; None
            means the item never reports low stock.

    Raises:
        ValueError: If total_on_hand is negative.
    """
    on_hand = _as_decimal(total_on_hand)

    if on_hand == _ZERO:
        return StockStatus.OUT_OF_STOCK

    if on_hand < _ZERO:
        logger.warning("stock_status_negative_total", extra={
            "total_on_hand": str(on_hand),
        })
        raise ValueError(f"Cannot classify negative stock total {on_hand}")

    if reorder_point is not None and on_hand < _as_decimal(reorder_point):
        return StockStatus.LOW_STOCK

    return StockStatus.IN_STOCK


def classify_summary(
    summary: StockSummary,
    reorder_point: Decimal | int | str | None = None,
) -> StockStatus:
    """Classify a StockSummary by its total on-hand quantity."""
    return classify_stock_status(summary.total_on_hand, reorder_point)
