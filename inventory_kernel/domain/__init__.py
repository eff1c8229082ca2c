"""
Pure domain layer.

This module contains pure data transfer objects with NO dependencies on:
- HTTP clients or the desktop IPC bridge
- UI state
- Time/clock (except the Clock abstraction itself)
- I/O

All domain objects are immutable and deterministic.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.stock import (
    NO_VARIANT_KEY,
    ExpiryAlert,
    ExpiryRisk,
    ExpiryStatus,
    LocationRef,
    LocationStockSummary,
    StockRecord,
    StockStatus,
    StockSummary,
    parse_quantity,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "NO_VARIANT_KEY",
    "ExpiryAlert",
    "ExpiryRisk",
    "ExpiryStatus",
    "LocationRef",
    "LocationStockSummary",
    "StockRecord",
    "StockStatus",
    "StockSummary",
    "parse_quantity",
]
