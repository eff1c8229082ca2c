"""
Module: inventory_engines.aggregation
Responsibility:
    Sum per-location / per-variant / per-batch stock rows into summaries:
    item totals, a location breakdown and a variant breakdown.  The same
    grouping backs the stock view of the item detail page and the stock
    summary columns of the item list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import inventory_kernel.domain and inventory_kernel.logging_config.

Invariants enforced:
    - Purity: no clock access, no I/O.
    - Order independence: any permutation of the input rows yields equal
      results.  Quantities are Decimal so sums are exact; output mappings
      are keyed in sorted order; a location's descriptor is chosen by a
      deterministic minimum, never by row position.
    - ``location_count`` counts distinct location ids (a set), not rows.
    - Totals are summed from the rows themselves, never re-aggregated from
      the variant buckets.

Failure modes:
    - None for well-formed input.  Malformed rows are rejected earlier by
      ``StockRecord`` construction (InvalidStockRecordError).
    - Negative or NaN quantities propagate into the sums unchanged.

Usage:
    from inventory_engines.aggregation import aggregate

    result = aggregate(records=records)
    result.totals.total_on_hand
    result.by_variant["none"].location_count
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.stock import (
    NO_VARIANT_KEY,
    ZERO,
    LocationRef,
    LocationStockSummary,
    StockRecord,
    StockSummary,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")


@dataclass(frozen=True)
class AggregationResult:
    """
    Output of ``aggregate``.

    Contract:
        ``totals`` covers every input row; ``by_variant`` maps each
        aggregation key (variant id or ``NO_VARIANT_KEY``) to the summary of
        its rows.
    """

    totals: StockSummary
    by_variant: Mapping[str, StockSummary] = field(default_factory=dict)

    @property
    def variant_keys(self) -> tuple[str, ...]:
        return tuple(self.by_variant)

    @property
    def has_variants(self) -> bool:
        """True if any row carried a variant id."""
        return any(key != NO_VARIANT_KEY for key in self.by_variant)

    def for_variant(self, variant_id: str | None) -> StockSummary:
        """Summary for a variant (None = item-level rows); zero if absent."""
        return self.by_variant.get(variant_id or NO_VARIANT_KEY, StockSummary.zero())


class _LocationAccumulator:
    """Mutable running sums for one location inside one bucket."""

    __slots__ = ("on_hand", "reserved", "blocked", "damaged", "available", "location")

    def __init__(self) -> None:
        self.on_hand = ZERO
        self.reserved = ZERO
        self.blocked = ZERO
        self.damaged = ZERO
        self.available = ZERO
        self.location: LocationRef | None = None

    def add(self, record: StockRecord) -> None:
        self.on_hand += record.on_hand_quantity
        self.reserved += record.reserved_quantity
        self.blocked += record.blocked_quantity
        self.damaged += record.damaged_quantity
        self.available += record.available_quantity
        # Denormalized descriptors may disagree between rows; keep the
        # smallest so the choice does not depend on row order.
        if record.location is not None and (
            self.location is None or record.location.sort_key < self.location.sort_key
        ):
            self.location = record.location

    def freeze(self, location_id: str) -> LocationStockSummary:
        return LocationStockSummary(
            location_id=location_id,
            location=self.location,
            total_on_hand=self.on_hand,
            total_reserved=self.reserved,
            total_blocked=self.blocked,
            total_damaged=self.damaged,
            total_available=self.available,
        )


def _sum_field(records: Sequence[StockRecord], attr: str) -> Decimal:
    return sum((getattr(r, attr) for r in records), ZERO)


def summarize(records: Sequence[StockRecord]) -> StockSummary:
    """Sum a group of rows into one StockSummary with a location breakdown."""
    per_location: dict[str, _LocationAccumulator] = defaultdict(_LocationAccumulator)
    for record in records:
        per_location[record.location_id].add(record)

    by_location = {
        location_id: per_location[location_id].freeze(location_id)
        for location_id in sorted(per_location)
    }

    return StockSummary(
        total_on_hand=_sum_field(records, "on_hand_quantity"),
        total_reserved=_sum_field(records, "reserved_quantity"),
        total_blocked=_sum_field(records, "blocked_quantity"),
        total_damaged=_sum_field(records, "damaged_quantity"),
        total_available=_sum_field(records, "available_quantity"),
        location_count=len({r.location_id for r in records}),
        by_location=by_location,
    )


def _group_by(records: Iterable[StockRecord], key) -> dict[str, list[StockRecord]]:
    groups: dict[str, list[StockRecord]] = defaultdict(list)
    for record in records:
        groups[key(record)].append(record)
    return {k: groups[k] for k in sorted(groups)}


@traced_engine("stock_aggregation", "1.0", fingerprint_fields=("records",))
def aggregate(records: Sequence[StockRecord]) -> AggregationResult:
    """
    Aggregate stock rows into totals and per-variant summaries.

    Preconditions:
        - Every row is a constructed ``StockRecord`` (required ids present).
        - Rows normally belong to one item; rows of several items are summed
          together, which is what the location-wise views want.
    Postconditions:
        - ``totals`` sums every row directly.
        - ``by_variant`` groups by ``variant_id or "none"`` and, within each
          group, by ``location_id``.
        - Result is identical for any permutation of ``records``.
    """
    records = list(records)
    buckets = _group_by(records, lambda r: r.aggregation_key)

    by_variant = {key: summarize(rows) for key, rows in buckets.items()}
    totals = summarize(records)

    logger.debug("stock_aggregated", extra={
        "record_count": len(records),
        "variant_bucket_count": len(by_variant),
        "location_count": totals.location_count,
        "total_on_hand": str(totals.total_on_hand),
    })

    return AggregationResult(totals=totals, by_variant=by_variant)


@traced_engine("stock_aggregation", "1.0", fingerprint_fields=("records",))
def summarize_items(records: Sequence[StockRecord]) -> dict[str, StockSummary]:
    """Per-item totals for rows spanning several items, keyed by item id."""
    groups = _group_by(records, lambda r: r.item_id)
    summaries = {item_id: summarize(rows) for item_id, rows in groups.items()}

    logger.debug("item_summaries_built", extra={
        "record_count": sum(len(rows) for rows in groups.values()),
        "item_count": len(summaries),
    })
    return summaries
