"""
Module: inventory_engines.expiry
Responsibility:
    Classify stock by proximity to expiry into ordered risk buckets
    (expired / critical / warning / ok), build expiry alerts from raw stock
    rows or from pre-classified service rows, and reduce several alerts of
    one item to its single worst risk.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The reference date is always injected; this module never reads the clock.

Invariants enforced:
    - days_until_expiry is a calendar-day difference: both operands are
      truncated to their date first, so two instants on the same day give 0.
    - Bucket boundaries (defaults 7 / 30):
        expired   days < 0
        critical  0 <= days <= critical_days
        warning   critical_days < days <= warning_days
        ok        days > warning_days
    - Worst-alert selection picks the smallest days_until_expiry and breaks
      ties on (location_id, batch_number, expiry_date), so the choice is
      stable under any re-ordering of the input.

Failure modes:
    - InvalidThresholdsError for negative or inverted thresholds.
    - InvalidStockRecordError for service alert rows missing required keys.

Usage:
    from datetime import date
    from inventory_engines.expiry import ExpiryRiskClassifier

    classifier = ExpiryRiskClassifier()
    days = classifier.days_until_expiry(date(2024, 3, 6), date(2024, 3, 1))  # 5
    classifier.classify(days)  # ExpiryStatus.CRITICAL
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from inventory_engines.tracer import traced_engine
from inventory_kernel.domain.stock import (
    ZERO,
    ExpiryAlert,
    ExpiryRisk,
    ExpiryStatus,
    LocationRef,
    StockRecord,
    parse_calendar_date,
    parse_quantity,
)
from inventory_kernel.exceptions import InvalidStockRecordError, InvalidThresholdsError
from inventory_kernel.logging_config import get_logger

logger = get_logger("engines.expiry")


@dataclass(frozen=True)
class ExpiryThresholds:
    """
    Day offsets separating the critical, warning and ok buckets.

    Guarantees:
        - 0 <= critical_days <= warning_days.
    """

    critical_days: int = 7
    warning_days: int = 30

    def __post_init__(self) -> None:
        if self.critical_days < 0 or self.warning_days < self.critical_days:
            raise InvalidThresholdsError(self.critical_days, self.warning_days)


DEFAULT_EXPIRY_THRESHOLDS = ExpiryThresholds()


@dataclass(frozen=True)
class ExpiryBucketTotals:
    """Alert count and quantity falling into one expiry bucket."""

    alert_count: int = 0
    quantity: Decimal = ZERO


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _whole_days(value: Any, item_id: str) -> int:
    """Parse a server day count; fractional, infinite or non-numeric values are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = None
    if isinstance(value, (str, float, Decimal)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            number = None
    if number is None or not number.is_finite() or number != number.to_integral_value():
        raise InvalidStockRecordError(
            "daysUntilExpiry", f"expected a whole number of days, got {value!r}", item_id
        )
    return int(number)


class ExpiryRiskClassifier:
    """
    Classify expiry proximity for stock rows and alerts.

    Contract:
        Pure functions -- no I/O, no clock.  The reference date is a
        parameter of every date-dependent method.
    Guarantees:
        - ``classify`` maps every integer to exactly one bucket.
    Non-goals:
        - Does not fetch alerts; the services layer does.
    """

    def __init__(self, thresholds: ExpiryThresholds | None = None):
        self.thresholds = thresholds or DEFAULT_EXPIRY_THRESHOLDS

    def days_until_expiry(
        self,
        expiry_date: date | datetime,
        reference_date: date | datetime,
    ) -> int:
        """Whole calendar days from reference_date to expiry_date.

        Negative when already expired.
        """
        return (_as_date(expiry_date) - _as_date(reference_date)).days

    def classify(self, days_until_expiry: int) -> ExpiryStatus:
        """Map a day offset to its expiry bucket."""
        if days_until_expiry < 0:
            return ExpiryStatus.EXPIRED
        if days_until_expiry <= self.thresholds.critical_days:
            return ExpiryStatus.CRITICAL
        if days_until_expiry <= self.thresholds.warning_days:
            return ExpiryStatus.WARNING
        return ExpiryStatus.OK

    def alert_from_record(
        self,
        record: StockRecord,
        reference_date: date | datetime,
    ) -> ExpiryAlert | None:
        """Synthesize an alert from a stock row; None for non-perishable rows."""
        if record.expiry_date is None:
            return None
        days = self.days_until_expiry(record.expiry_date, reference_date)
        return ExpiryAlert(
            item_id=record.item_id,
            location_id=record.location_id,
            batch_number=record.batch_number,
            quantity=record.on_hand_quantity,
            expiry_date=record.expiry_date,
            days_until_expiry=days,
            expiry_status=self.classify(days),
        )

    def alert_from_payload(
        self,
        row: Mapping[str, Any],
        reference_date: date | datetime | None = None,
    ) -> ExpiryAlert:
        """
        Build an alert from a service row that may already be classified.

        The row's ``daysUntilExpiry`` is kept as computed server-side; when
        absent it is derived from ``expiryDate`` and ``reference_date``.  The
        row's ``expiryStatus`` is kept when it names one of the four buckets
        and re-derived from the days otherwise.

        Raises:
            InvalidStockRecordError: missing itemId, locationId or expiryDate,
                no way to determine days until expiry, a daysUntilExpiry that
                is not a finite whole number, or a location that is not an object.
        """
        if not isinstance(row, Mapping):
            raise InvalidStockRecordError("row", f"expected an object, got {type(row).__name__}")
        item_id = row.get("itemId")
        if not item_id:
            raise InvalidStockRecordError("itemId", "required")
        item_id = str(item_id)

        location = LocationRef.from_payload(row.get("location"), item_id)
        location_id = row.get("locationId") or (location.id if location else None)
        if not location_id:
            raise InvalidStockRecordError("locationId", "required", item_id)

        expiry_date = parse_calendar_date(row.get("expiryDate"), "expiryDate", item_id)
        if expiry_date is None:
            raise InvalidStockRecordError("expiryDate", "required", item_id)

        raw_days = row.get("daysUntilExpiry")
        if raw_days is not None:
            days = _whole_days(raw_days, item_id)
        elif reference_date is not None:
            days = self.days_until_expiry(expiry_date, reference_date)
        else:
            raise InvalidStockRecordError(
                "daysUntilExpiry", "required when no reference date is given", item_id
            )

        status = ExpiryStatus.parse(row.get("expiryStatus"))
        if status is None:
            status = self.classify(days)
            logger.debug("expiry_status_derived", extra={
                "item_id": item_id,
                "server_status": row.get("expiryStatus"),
                "days_until_expiry": days,
                "expiry_status": status.value,
            })

        batch_number = row.get("batchNumber")
        return ExpiryAlert(
            item_id=item_id,
            location_id=str(location_id),
            batch_number=str(batch_number) if batch_number else None,
            quantity=parse_quantity(row.get("quantity"), "quantity", item_id),
            expiry_date=expiry_date,
            days_until_expiry=days,
            expiry_status=status,
        )

    @traced_engine(
        "expiry_risk", "1.0",
        fingerprint_fields=("records", "reference_date", "days_ahead"),
    )
    def synthesize_alerts(
        self,
        records: Sequence[StockRecord],
        reference_date: date | datetime,
        days_ahead: int | None = None,
    ) -> tuple[ExpiryAlert, ...]:
        """
        Alerts for every perishable row, most urgent first.

        Args:
            records: Stock rows; rows without an expiry date are skipped.
            reference_date: "Today" for the calculation.
            days_ahead: When set, keep only alerts expiring within that many
                days (already-expired alerts are always kept).
        """
        alerts: list[ExpiryAlert] = []
        skipped = 0
        for record in records:
            alert = self.alert_from_record(record, reference_date)
            if alert is None:
                skipped += 1
                continue
            if days_ahead is not None and alert.days_until_expiry > days_ahead:
                continue
            alerts.append(alert)

        alerts.sort(key=lambda a: (a.tie_break_key, a.item_id))

        logger.info("expiry_alerts_synthesized", extra={
            "record_count": len(records),
            "non_perishable_count": skipped,
            "alert_count": len(alerts),
            "reference_date": _as_date(reference_date).isoformat(),
            "days_ahead": days_ahead,
        })
        return tuple(alerts)


_DEFAULT_CLASSIFIER = ExpiryRiskClassifier()


def days_until_expiry(expiry_date: date | datetime, reference_date: date | datetime) -> int:
    """Calendar days from reference_date to expiry_date."""
    return _DEFAULT_CLASSIFIER.days_until_expiry(expiry_date, reference_date)


def classify_expiry(
    days_until_expiry: int,
    thresholds: ExpiryThresholds | None = None,
) -> ExpiryStatus:
    """Classify a day offset with the given (or default 7/30) thresholds."""
    if thresholds is None:
        return _DEFAULT_CLASSIFIER.classify(days_until_expiry)
    return ExpiryRiskClassifier(thresholds).classify(days_until_expiry)


def select_worst_alert(alerts: Iterable[ExpiryAlert]) -> ExpiryAlert | None:
    """The alert with the fewest days until expiry; None for no alerts."""
    return min(alerts, key=lambda a: a.tie_break_key, default=None)


def worst_risk_by_item(alerts: Iterable[ExpiryAlert]) -> dict[str, ExpiryRisk]:
    """Reduce alerts to the worst risk per item id."""
    worst: dict[str, ExpiryAlert] = {}
    for alert in alerts:
        current = worst.get(alert.item_id)
        if current is None or alert.tie_break_key < current.tie_break_key:
            worst[alert.item_id] = alert

    return {
        item_id: ExpiryRisk(
            days_until_expiry=alert.days_until_expiry,
            expiry_status=alert.expiry_status,
        )
        for item_id, alert in sorted(worst.items())
    }


def summarize_expiry(alerts: Iterable[ExpiryAlert]) -> dict[ExpiryStatus, ExpiryBucketTotals]:
    """Alert count and quantity per bucket; every bucket is present."""
    counts = {status: 0 for status in ExpiryStatus}
    quantities = {status: ZERO for status in ExpiryStatus}
    for alert in alerts:
        counts[alert.expiry_status] += 1
        quantities[alert.expiry_status] += alert.quantity

    return {
        status: ExpiryBucketTotals(alert_count=counts[status], quantity=quantities[status])
        for status in ExpiryStatus
    }
