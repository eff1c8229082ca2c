"""
Module: inventory_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure stock
    calculation engines.  This is the canonical import surface for
    inventory_services and for presentation code.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import inventory_kernel (domain, exceptions, logging).
    MUST NOT import inventory_services or inventory_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Reference dates are passed in by the caller.
    - Decimal-only arithmetic for quantities; floats are converted at the
      parsing boundary.
    - Determinism: identical inputs (in any order) produce identical outputs.

Usage:
    from inventory_engines import aggregate, classify_stock_status
    from inventory_engines import ExpiryRiskClassifier, worst_risk_by_item
    from inventory_engines import ItemFilterCriteria, SortState, filter_and_sort
"""

from inventory_engines.aggregation import (
    AggregationResult,
    aggregate,
    summarize,
    summarize_items,
)
from inventory_engines.expiry import (
    DEFAULT_EXPIRY_THRESHOLDS,
    ExpiryBucketTotals,
    ExpiryRiskClassifier,
    ExpiryThresholds,
    classify_expiry,
    days_until_expiry,
    select_worst_alert,
    summarize_expiry,
    worst_risk_by_item,
)
from inventory_engines.fefo import (
    FEFOAllocation,
    FEFOAllocationResult,
    allocate_fefo,
)
from inventory_engines.filtering import (
    CatalogItem,
    ItemFilterCriteria,
    SortColumn,
    SortDirection,
    SortState,
    apply_filters,
    filter_and_sort,
    sort_items,
)
from inventory_engines.reports import (
    BatchExpiryRisk,
    LocationItemLine,
    LocationQuantity,
    LocationStockReport,
    build_batch_expiry_risk,
    summarize_by_location,
)
from inventory_engines.stock_status import (
    classify_stock_status,
    classify_summary,
)

__all__ = [
    # Aggregation
    "AggregationResult",
    "aggregate",
    "summarize",
    "summarize_items",
    # Stock status
    "classify_stock_status",
    "classify_summary",
    # Expiry
    "DEFAULT_EXPIRY_THRESHOLDS",
    "ExpiryBucketTotals",
    "ExpiryRiskClassifier",
    "ExpiryThresholds",
    "classify_expiry",
    "days_until_expiry",
    "select_worst_alert",
    "summarize_expiry",
    "worst_risk_by_item",
    # Filtering / sorting
    "CatalogItem",
    "ItemFilterCriteria",
    "SortColumn",
    "SortDirection",
    "SortState",
    "apply_filters",
    "filter_and_sort",
    "sort_items",
    # FEFO
    "FEFOAllocation",
    "FEFOAllocationResult",
    "allocate_fefo",
    # Reports
    "BatchExpiryRisk",
    "LocationItemLine",
    "LocationQuantity",
    "LocationStockReport",
    "build_batch_expiry_risk",
    "summarize_by_location",
]
