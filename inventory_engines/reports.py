"""
Module: inventory_engines.reports
Responsibility:
    Build the inventory report views that are pure regroupings of stock
    rows: batch expiry risk (per item and batch) and location-wise stock
    (per location).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Deterministic output order for any permutation of the input.
    - Batch risk is judged on the batch's earliest expiry date.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from inventory_engines.expiry import ExpiryRiskClassifier, ExpiryThresholds
from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.stock import (
    ZERO,
    ExpiryStatus,
    LocationRef,
    StockRecord,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.reports")


@dataclass(frozen=True, slots=True)
class LocationQuantity:
    location_id: str
    quantity: Decimal
    location: LocationRef | None = None


@dataclass(frozen=True)
class BatchExpiryRisk:
    """One batch of one item, with its quantity spread over locations."""

    item_id: str
    batch_number: str | None
    expiry_date: date
    days_until_expiry: int
    expiry_status: ExpiryStatus
    total_quantity: Decimal
    locations: tuple[LocationQuantity, ...]


@dataclass(frozen=True, slots=True)
class LocationItemLine:
    item_id: str
    quantity: Decimal
    batch_number: str | None = None


@dataclass(frozen=True)
class LocationStockReport:
    """Stock held at one location across items."""

    location_id: str
    location: LocationRef | None
    total_items: int
    total_quantity: Decimal
    items: tuple[LocationItemLine, ...]


def _pick_location(current: LocationRef | None, candidate: LocationRef | None) -> LocationRef | None:
    if candidate is None:
        return current
    if current is None or candidate.sort_key < current.sort_key:
        return candidate
    return current


@traced_engine(
    "batch_expiry_risk", "1.0",
    fingerprint_fields=("records", "reference_date", "days_ahead"),
)
def build_batch_expiry_risk(
    records: Sequence[StockRecord],
    reference_date: date,
    days_ahead: int | None = None,
    thresholds: ExpiryThresholds | None = None,
) -> list[BatchExpiryRisk]:
    """
    Group perishable rows by (item, batch), most urgent batch first.

    Args:
        records: Stock rows; rows without an expiry date are ignored.
        reference_date: "Today".
        days_ahead: Keep only batches expiring within this many days
            (expired batches are always kept).
        thresholds: Expiry bucket thresholds.
    """
    classifier = ExpiryRiskClassifier(thresholds)

    quantities: dict[tuple[str, str], dict[str, Decimal]] = defaultdict(
        lambda: defaultdict(lambda: ZERO)
    )
    locations: dict[str, LocationRef | None] = {}
    earliest: dict[tuple[str, str], date] = {}

    for record in records:
        if record.expiry_date is None:
            continue
        key = (record.item_id, record.batch_number or "")
        quantities[key][record.location_id] += record.on_hand_quantity
        locations[record.location_id] = _pick_location(
            locations.get(record.location_id), record.location
        )
        if key not in earliest or record.expiry_date < earliest[key]:
            earliest[key] = record.expiry_date

    report: list[BatchExpiryRisk] = []
    for key, per_location in quantities.items():
        item_id, batch_number = key
        days = classifier.days_until_expiry(earliest[key], reference_date)
        if days_ahead is not None and days > days_ahead:
            continue
        report.append(BatchExpiryRisk(
            item_id=item_id,
            batch_number=batch_number or None,
            expiry_date=earliest[key],
            days_until_expiry=days,
            expiry_status=classifier.classify(days),
            total_quantity=sum(per_location.values(), ZERO),
            locations=tuple(
                LocationQuantity(
                    location_id=loc_id,
                    quantity=per_location[loc_id],
                    location=locations.get(loc_id),
                )
                for loc_id in sorted(per_location)
            ),
        ))

    report.sort(key=lambda b: (b.days_until_expiry, b.item_id, b.batch_number or ""))

    logger.info("batch_expiry_risk_built", extra={
        "record_count": len(records),
        "batch_count": len(report),
        "reference_date": reference_date.isoformat(),
        "days_ahead": days_ahead,
    })
    return report


@traced_engine("location_stock", "1.0", fingerprint_fields=("records",))
def summarize_by_location(records: Sequence[StockRecord]) -> list[LocationStockReport]:
    """Per-location totals with one line per (item, batch), sorted by location id."""
    lines: dict[str, dict[tuple[str, str], Decimal]] = defaultdict(
        lambda: defaultdict(lambda: ZERO)
    )
    descriptors: dict[str, LocationRef | None] = {}

    for record in records:
        lines[record.location_id][(record.item_id, record.batch_number or "")] += (
            record.on_hand_quantity
        )
        descriptors[record.location_id] = _pick_location(
            descriptors.get(record.location_id), record.location
        )

    report = []
    for location_id in sorted(lines):
        per_item = lines[location_id]
        report.append(LocationStockReport(
            location_id=location_id,
            location=descriptors.get(location_id),
            total_items=len({item_id for item_id, _ in per_item}),
            total_quantity=sum(per_item.values(), ZERO),
            items=tuple(
                LocationItemLine(item_id=item_id, quantity=per_item[(item_id, batch)],
                                 batch_number=batch or None)
                for item_id, batch in sorted(per_item)
            ),
        ))

    logger.debug("location_stock_summarized", extra={
        "record_count": len(records),
        "location_count": len(report),
    })
    return report
