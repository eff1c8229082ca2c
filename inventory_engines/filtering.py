"""
Module: inventory_engines.filtering
Responsibility:
    Compose the item list's client-side filters (search term, category,
    industry type, stock status, expiry risk) and its single-column sort,
    using summaries precomputed by the aggregation and expiry engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Filters are conjunctive: an item must satisfy every active filter.
    - Fail closed: an item with no entry in the stock-summary map never
      matches a stock-status filter; an item with no entry in the
      expiry-risk map never matches an expiry-risk filter.
    - Sorting is single-key, stable and case-insensitive on text columns.
      Equal keys keep their input order in both directions.
    - Toggling the active column reverses direction; choosing another
      column resets to ascending.

Failure modes:
    - ValueError when criteria or sort state name an unknown status,
      risk bucket, column or direction.
    - ValueError from the stock-status classifier when a summary carries a
      negative on-hand total and a stock-status filter is active.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from inventory_engines.expiry import (
    DEFAULT_EXPIRY_THRESHOLDS,
    ExpiryRiskClassifier,
    ExpiryThresholds,
)
from inventory_engines.stock_status import classify_stock_status
from inventory_kernel.domain.stock import (
    ExpiryRisk,
    ExpiryStatus,
    StockStatus,
    StockSummary,
    parse_quantity,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.filtering")


@dataclass(frozen=True)
class CatalogItem:
    """The fields of an inventory item that the list view filters and sorts on."""

    item_id: str
    sku: str
    name: str
    unit_of_measure: str
    industry_type: str
    is_active: bool = True
    category: str | None = None
    reorder_point: Decimal | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> CatalogItem:
        """Build from an inventory service item row."""
        flags = data.get("industryFlags") or {}
        reorder_point = data.get("reorderPoint")
        item_id = str(data["id"])
        return cls(
            item_id=item_id,
            sku=str(data.get("sku") or ""),
            name=str(data.get("name") or ""),
            unit_of_measure=str(data.get("unitOfMeasure") or ""),
            industry_type=str(flags.get("industryType") or ""),
            is_active=bool(data.get("isActive", True)),
            category=data.get("category") or None,
            reorder_point=(
                parse_quantity(reorder_point, "reorderPoint", item_id)
                if reorder_point is not None
                else None
            ),
        )


@dataclass(frozen=True)
class ItemFilterCriteria:
    """
    Active filters of the item list.  ``None`` or empty string disables one.

    Status and risk values may be given as enum members or their string
    values ("low-stock", "critical", ...).
    """

    search_term: str | None = None
    category: str | None = None
    industry_type: str | None = None
    stock_status: StockStatus | None = None
    expiry_risk: ExpiryStatus | None = None

    def __post_init__(self) -> None:
        if self.stock_status is not None and not isinstance(self.stock_status, StockStatus):
            object.__setattr__(self, "stock_status", StockStatus(self.stock_status))
        if self.expiry_risk is not None and not isinstance(self.expiry_risk, ExpiryStatus):
            object.__setattr__(self, "expiry_risk", ExpiryStatus(self.expiry_risk))

    @property
    def needs_stock_summaries(self) -> bool:
        return self.stock_status is not None

    @property
    def needs_expiry_risks(self) -> bool:
        return self.expiry_risk is not None

    @property
    def active_filters(self) -> tuple[str, ...]:
        names = ("search_term", "category", "industry_type", "stock_status", "expiry_risk")
        return tuple(n for n in names if getattr(self, n))


class SortColumn(str, Enum):
    SKU = "sku"
    NAME = "name"
    CATEGORY = "category"
    UNIT = "unit"
    INDUSTRY = "industry"
    STATUS = "status"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def reversed(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class SortState:
    """Current sort column and direction; no column means input order."""

    column: SortColumn | None = None
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        if self.column is not None and not isinstance(self.column, SortColumn):
            object.__setattr__(self, "column", SortColumn(self.column))
        if not isinstance(self.direction, SortDirection):
            object.__setattr__(self, "direction", SortDirection(self.direction))

    def toggle(self, column: SortColumn | str) -> SortState:
        """Header click: same column flips direction, new column sorts ascending."""
        column = SortColumn(column)
        if column == self.column:
            return replace(self, direction=self.direction.reversed())
        return SortState(column=column, direction=SortDirection.ASC)


_SORT_KEYS: dict[SortColumn, Callable[[CatalogItem], Any]] = {
    SortColumn.SKU: lambda item: item.sku.lower(),
    SortColumn.NAME: lambda item: item.name.lower(),
    SortColumn.CATEGORY: lambda item: (item.category or "").lower(),
    SortColumn.UNIT: lambda item: item.unit_of_measure.lower(),
    SortColumn.INDUSTRY: lambda item: item.industry_type.lower(),
    SortColumn.STATUS: lambda item: 1 if item.is_active else 0,
}


def _matches_search(item: CatalogItem, term: str) -> bool:
    needle = term.strip().lower()
    return needle in item.sku.lower() or needle in item.name.lower()


def _matches_stock_status(
    item: CatalogItem,
    wanted: StockStatus,
    stock_summaries: Mapping[str, StockSummary],
) -> bool:
    summary = stock_summaries.get(item.item_id)
    if summary is None:
        return False
    return classify_stock_status(summary.total_on_hand, item.reorder_point) is wanted


def _matches_expiry_risk(
    item: CatalogItem,
    wanted: ExpiryStatus,
    expiry_risks: Mapping[str, ExpiryRisk],
    classifier: ExpiryRiskClassifier,
) -> bool:
    risk = expiry_risks.get(item.item_id)
    if risk is None:
        return False
    return classifier.classify(risk.days_until_expiry) is wanted


def apply_filters(
    items: Sequence[CatalogItem],
    criteria: ItemFilterCriteria,
    stock_summaries: Mapping[str, StockSummary] | None = None,
    expiry_risks: Mapping[str, ExpiryRisk] | None = None,
    thresholds: ExpiryThresholds | None = None,
) -> list[CatalogItem]:
    """
    Keep the items that satisfy every active filter.

    Args:
        items: Items in display order.
        criteria: Active filters.
        stock_summaries: Per-item summaries keyed by item id.
        expiry_risks: Per-item worst expiry risk keyed by item id.
        thresholds: Bucket thresholds applied to each item's days until
            expiry.

    Returns:
        Matching items in their input order.
    """
    summaries = stock_summaries or {}
    risks = expiry_risks or {}
    classifier = ExpiryRiskClassifier(thresholds or DEFAULT_EXPIRY_THRESHOLDS)

    result = list(items)
    if criteria.search_term and criteria.search_term.strip():
        result = [i for i in result if _matches_search(i, criteria.search_term)]
    if criteria.category:
        wanted = criteria.category.lower()
        result = [i for i in result if (i.category or "").lower() == wanted]
    if criteria.industry_type:
        wanted = criteria.industry_type.lower()
        result = [i for i in result if i.industry_type.lower() == wanted]
    if criteria.stock_status is not None:
        result = [
            i for i in result
            if _matches_stock_status(i, criteria.stock_status, summaries)
        ]
    if criteria.expiry_risk is not None:
        result = [
            i for i in result
            if _matches_expiry_risk(i, criteria.expiry_risk, risks, classifier)
        ]

    logger.debug("items_filtered", extra={
        "input_count": len(items),
        "output_count": len(result),
        "active_filters": list(criteria.active_filters),
    })
    return result


def sort_items(items: Sequence[CatalogItem], sort_state: SortState) -> list[CatalogItem]:
    """Stable single-column sort; input order when no column is selected."""
    if sort_state.column is None:
        return list(items)
    return sorted(
        items,
        key=_SORT_KEYS[sort_state.column],
        reverse=sort_state.direction is SortDirection.DESC,
    )


def filter_and_sort(
    items: Sequence[CatalogItem],
    criteria: ItemFilterCriteria,
    sort_state: SortState | None = None,
    stock_summaries: Mapping[str, StockSummary] | None = None,
    expiry_risks: Mapping[str, ExpiryRisk] | None = None,
    thresholds: ExpiryThresholds | None = None,
) -> list[CatalogItem]:
    """Apply every filter, then the sort."""
    filtered = apply_filters(
        items,
        criteria,
        stock_summaries=stock_summaries,
        expiry_risks=expiry_risks,
        thresholds=thresholds,
    )
    return sort_items(filtered, sort_state or SortState())
