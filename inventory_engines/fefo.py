"""
Module: inventory_engines.fefo
Responsibility:
    Preview a First-Expired-First-Out allocation: which batches at one
    location would be drawn, and how much of each, to satisfy a requested
    quantity of an item.  The inventory backend performs the binding
    allocation; this engine reproduces it over already-fetched stock rows so
    the movement screens can show the picks before submitting.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Batches are consumed earliest expiry first; batches without an expiry
      date come last; equal expiries are ordered by batch number.
    - Only ``available_quantity`` is allocatable.  Rows of the same batch
      (e.g. one per serial) are merged before allocation.
    - Expired batches (expiry before the reference date) are skipped unless
      ``allow_expired`` is set.  A batch expiring on the reference date is
      still allocatable.
    - The allocations sum exactly to the requested quantity.

Failure modes:
    - ValueError if the requested quantity is not positive.
    - InsufficientStockError if allocatable stock is below the request.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.stock import ZERO, StockRecord, parse_quantity
from inventory_kernel.exceptions import InsufficientStockError
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.fefo")


@dataclass(frozen=True, slots=True)
class FEFOAllocation:
    """Quantity drawn from one batch."""

    batch_number: str | None
    quantity: Decimal
    expiry_date: date | None = None
    days_until_expiry: int | None = None


@dataclass(frozen=True)
class FEFOAllocationResult:
    """
    Allocation plan for one item at one location.

    Guarantees:
        - ``total_allocated == requested_quantity``.
    """

    item_id: str
    location_id: str
    requested_quantity: Decimal
    allocations: tuple[FEFOAllocation, ...]
    skipped_expired_quantity: Decimal = ZERO

    @property
    def total_allocated(self) -> Decimal:
        return sum((a.quantity for a in self.allocations), ZERO)

    @property
    def batch_numbers(self) -> tuple[str | None, ...]:
        return tuple(a.batch_number for a in self.allocations)


def _fefo_order(key: tuple[str, date | None]) -> tuple[bool, date, str]:
    batch_number, expiry = key
    return (expiry is None, expiry or date.max, batch_number)


@traced_engine(
    "fefo_allocation", "1.0",
    fingerprint_fields=(
        "records", "item_id", "location_id", "quantity", "reference_date",
        "variant_id", "allow_expired",
    ),
)
def allocate_fefo(
    records: Sequence[StockRecord],
    item_id: str,
    location_id: str,
    quantity: Decimal | int | str,
    reference_date: date,
    variant_id: str | None = None,
    allow_expired: bool = False,
) -> FEFOAllocationResult:
    """
    Plan a FEFO pick of ``quantity`` units of an item at a location.

    Args:
        records: Stock rows; rows of other items/locations are ignored.
        item_id: Item to allocate.
        location_id: Location to allocate from.
        quantity: Requested quantity (> 0).
        reference_date: "Today" for expiry checks.
        variant_id: Restrict to one variant's rows when given.
        allow_expired: Also draw from batches that have already expired.

    Returns:
        FEFOAllocationResult whose allocations are in pick order.

    Raises:
        ValueError: quantity <= 0.
        InsufficientStockError: not enough allocatable stock.
    """
    t0 = time.monotonic()
    requested = parse_quantity(quantity, "quantity", item_id)
    if not requested > ZERO:
        raise ValueError(f"Requested quantity must be positive, got {requested}")

    available: dict[tuple[str, date | None], Decimal] = defaultdict(lambda: ZERO)
    skipped_expired = ZERO
    for record in records:
        if record.item_id != item_id or record.location_id != location_id:
            continue
        if variant_id is not None and record.variant_id != variant_id:
            continue
        if record.available_quantity <= ZERO:
            continue
        if (
            not allow_expired
            and record.expiry_date is not None
            and record.expiry_date < reference_date
        ):
            skipped_expired += record.available_quantity
            continue
        key = (record.batch_number or "", record.expiry_date)
        available[key] += record.available_quantity

    total_available = sum(available.values(), ZERO)
    if total_available < requested:
        req_str = format(requested.normalize(), "f")
        avail_str = format(total_available.normalize(), "f")
        logger.warning("fefo_insufficient_stock", extra={
            "item_id": item_id,
            "location_id": location_id,
            "requested_quantity": req_str,
            "available_quantity": avail_str,
            "skipped_expired_quantity": str(skipped_expired),
        })
        raise InsufficientStockError(
            item_id=item_id,
            location_id=location_id,
            requested_quantity=req_str,
            available_quantity=avail_str,
        )

    allocations: list[FEFOAllocation] = []
    remaining = requested
    for key in sorted(available, key=_fefo_order):
        if remaining <= ZERO:
            break
        batch_number, expiry = key
        take = min(remaining, available[key])
        remaining -= take
        allocations.append(FEFOAllocation(
            batch_number=batch_number or None,
            quantity=take,
            expiry_date=expiry,
            days_until_expiry=(expiry - reference_date).days if expiry else None,
        ))

    logger.info("fefo_allocation_planned", extra={
        "item_id": item_id,
        "location_id": location_id,
        "requested_quantity": str(requested),
        "batches_used": len(allocations),
        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
    })

    return FEFOAllocationResult(
        item_id=item_id,
        location_id=location_id,
        requested_quantity=requested,
        allocations=tuple(allocations),
        skipped_expired_quantity=skipped_expired,
    )
