"""
Stock -- Immutable stock rows, summaries and expiry alerts.

Responsibility:
    Defines the value objects that flow between the inventory service
    boundary, the pure stock engines and presentation code: raw per-location
    stock rows (``StockRecord``), derived summaries (``StockSummary``,
    ``LocationStockSummary``), expiry alerts and the classification enums.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    No dependencies on engines, services or configuration.

Invariants enforced:
    - Every StockRecord carries a non-empty item_id and location_id.
    - All quantities are Decimal (never float) so sums are exact and
      independent of summation order.
    - Quantities are independent counters; available_quantity is taken as
      supplied by the data source and never re-derived here.

Failure modes:
    - InvalidStockRecordError when a required key is missing or a value
      cannot be parsed.
    - Negative or NaN quantities are NOT rejected; they propagate into any
      downstream sum unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from inventory_kernel.exceptions import InvalidStockRecordError

# Bucket key for stock rows that carry no variant.
NO_VARIANT_KEY = "none"

ZERO = Decimal("0")

_QUANTITY_FIELDS = (
    ("on_hand_quantity", "onHandQuantity"),
    ("reserved_quantity", "reservedQuantity"),
    ("blocked_quantity", "blockedQuantity"),
    ("damaged_quantity", "damagedQuantity"),
    ("available_quantity", "availableQuantity"),
)


def parse_quantity(value: Any, field_name: str, item_id: str | None = None) -> Decimal:
    """Convert a service quantity to Decimal.

    ``None`` is read as zero.  Floats go through ``str`` so that ``0.1``
    becomes ``Decimal("0.1")``.  NaN is accepted and propagates.

    Raises:
        InvalidStockRecordError: value is a bool or not numeric.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidStockRecordError(field_name, f"expected a number, got {value!r}", item_id)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidStockRecordError(
            field_name, f"expected a number, got {value!r}", item_id
        ) from exc


def parse_calendar_date(value: Any, field_name: str, item_id: str | None = None) -> date | None:
    """Parse a date from a date, datetime or ISO-8601 string.

    Time-of-day components are dropped: only the calendar date is kept.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            if len(value) > 10:
                return datetime.fromisoformat(value).date()
            return date.fromisoformat(value)
        except ValueError as exc:
            raise InvalidStockRecordError(
                field_name, f"not an ISO date: {value!r}", item_id
            ) from exc
    raise InvalidStockRecordError(field_name, f"cannot parse date from {value!r}", item_id)


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class StockStatus(str, Enum):
    """Stock level classification relative to a reorder point."""

    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


class ExpiryStatus(str, Enum):
    """Expiry risk bucket, ordered by urgency."""

    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    OK = "ok"

    @property
    def urgency(self) -> int:
        """Higher is more urgent: expired > critical > warning > ok."""
        return _URGENCY[self]

    @classmethod
    def parse(cls, value: Any) -> ExpiryStatus | None:
        """Parse a status string case-insensitively; None if unrecognized."""
        if isinstance(value, ExpiryStatus):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_URGENCY = {
    ExpiryStatus.EXPIRED: 3,
    ExpiryStatus.CRITICAL: 2,
    ExpiryStatus.WARNING: 1,
    ExpiryStatus.OK: 0,
}


@dataclass(frozen=True, slots=True)
class LocationRef:
    """Denormalized location descriptor carried on stock rows."""

    id: str
    code: str | None = None
    name: str | None = None
    type: str | None = None

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.id, self.code or "", self.name or "", self.type or "")

    @classmethod
    def from_payload(
        cls,
        data: Mapping[str, Any] | None,
        item_id: str | None = None,
    ) -> LocationRef | None:
        """Parse the nested ``location`` object; None when absent or without an id.

        Raises:
            InvalidStockRecordError: value is present but not a mapping.
        """
        if data is None or data == "":
            return None
        if not isinstance(data, Mapping):
            raise InvalidStockRecordError(
                "location", f"expected an object, got {type(data).__name__}", item_id
            )
        if not data.get("id"):
            return None
        return cls(
            id=str(data["id"]),
            code=_optional_str(data.get("code")),
            name=_optional_str(data.get("name")),
            type=_optional_str(data.get("type")),
        )


@dataclass(frozen=True, slots=True)
class StockRecord:
    """
    One stock row: item x location x optional variant x optional batch/serial.

    Contract:
        ``item_id`` and ``location_id`` are required and non-empty.
        Quantity fields are coerced to Decimal on construction.

    Non-goals:
        - Does not check that available equals on-hand minus the other
          counters.
        - Does not reject negative quantities.
    """

    item_id: str
    location_id: str
    on_hand_quantity: Decimal = ZERO
    reserved_quantity: Decimal = ZERO
    blocked_quantity: Decimal = ZERO
    damaged_quantity: Decimal = ZERO
    available_quantity: Decimal = ZERO
    location: LocationRef | None = None
    variant_id: str | None = None
    batch_number: str | None = None
    serial_number: str | None = None
    expiry_date: date | None = None

    def __post_init__(self) -> None:
        if not self.item_id:
            raise InvalidStockRecordError("item_id", "required")
        if not self.location_id:
            raise InvalidStockRecordError("location_id", "required", self.item_id)
        for attr, _ in _QUANTITY_FIELDS:
            value = getattr(self, attr)
            if not isinstance(value, Decimal):
                object.__setattr__(self, attr, parse_quantity(value, attr, self.item_id))

    @property
    def aggregation_key(self) -> str:
        """Variant bucket this row belongs to."""
        return self.variant_id or NO_VARIANT_KEY

    @classmethod
    def from_payload(cls, row: Mapping[str, Any], item_id: str | None = None) -> StockRecord:
        """Build a record from an inventory service row.

        ``item_id`` may be supplied by the caller for per-item endpoints whose
        rows omit ``itemId``.

        Raises:
            InvalidStockRecordError: missing itemId/locationId or bad values.
        """
        resolved_item = row.get("itemId") or item_id
        if not resolved_item:
            raise InvalidStockRecordError("itemId", "required")
        resolved_item = str(resolved_item)

        location = LocationRef.from_payload(row.get("location"), resolved_item)
        location_id = row.get("locationId") or (location.id if location else None)
        if not location_id:
            raise InvalidStockRecordError("locationId", "required", resolved_item)

        quantities = {
            attr: parse_quantity(row.get(key), key, resolved_item)
            for attr, key in _QUANTITY_FIELDS
        }

        return cls(
            item_id=resolved_item,
            location_id=str(location_id),
            location=location,
            variant_id=_optional_str(row.get("variantId")),
            batch_number=_optional_str(row.get("batchNumber")),
            serial_number=_optional_str(row.get("serialNumber")),
            expiry_date=parse_calendar_date(row.get("expiryDate"), "expiryDate", resolved_item),
            **quantities,
        )


@dataclass(frozen=True, slots=True)
class LocationStockSummary:
    """Quantities summed over the rows of one location."""

    location_id: str
    location: LocationRef | None = None
    total_on_hand: Decimal = ZERO
    total_reserved: Decimal = ZERO
    total_blocked: Decimal = ZERO
    total_damaged: Decimal = ZERO
    total_available: Decimal = ZERO

    def as_dict(self) -> dict[str, Any]:
        return {
            "locationId": self.location_id,
            "location": (
                {
                    "id": self.location.id,
                    "code": self.location.code,
                    "name": self.location.name,
                    "type": self.location.type,
                }
                if self.location
                else None
            ),
            "totalOnHand": str(self.total_on_hand),
            "totalReserved": str(self.total_reserved),
            "totalBlocked": str(self.total_blocked),
            "totalDamaged": str(self.total_damaged),
            "totalAvailable": str(self.total_available),
        }


@dataclass(frozen=True)
class StockSummary:
    """
    Quantities summed over a set of stock rows (an item or one variant).

    Guarantees:
        - ``location_count`` is the number of distinct locations, equal to
          ``len(by_location)``.
        - ``by_location`` keys are in sorted order.
    """

    total_on_hand: Decimal = ZERO
    total_reserved: Decimal = ZERO
    total_blocked: Decimal = ZERO
    total_damaged: Decimal = ZERO
    total_available: Decimal = ZERO
    location_count: int = 0
    by_location: Mapping[str, LocationStockSummary] = field(default_factory=dict)

    @classmethod
    def zero(cls) -> StockSummary:
        """Zero-valued summary, used when a fetch fails."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.location_count == 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalOnHand": str(self.total_on_hand),
            "totalReserved": str(self.total_reserved),
            "totalBlocked": str(self.total_blocked),
            "totalDamaged": str(self.total_damaged),
            "totalAvailable": str(self.total_available),
            "locationCount": self.location_count,
            "byLocation": {k: v.as_dict() for k, v in self.by_location.items()},
        }


@dataclass(frozen=True, slots=True)
class ExpiryAlert:
    """A quantity of one item (and batch) at one location nearing expiry."""

    item_id: str
    location_id: str
    quantity: Decimal
    expiry_date: date
    days_until_expiry: int
    expiry_status: ExpiryStatus
    batch_number: str | None = None

    @property
    def tie_break_key(self) -> tuple[int, str, str, date, int, Decimal]:
        """Total ordering used to pick a deterministic worst alert.

        Alerts equal on every identifying field fall back to the more urgent
        status, then the larger quantity.
        """
        return (
            self.days_until_expiry,
            self.location_id,
            self.batch_number or "",
            self.expiry_date,
            -self.expiry_status.urgency,
            -self.quantity,
        )


@dataclass(frozen=True, slots=True)
class ExpiryRisk:
    """Item-level expiry risk: the worst alert reduced to days and status."""

    days_until_expiry: int
    expiry_status: ExpiryStatus
