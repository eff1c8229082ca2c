"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the stock engines must be able to tell a malformed stock row from
an allocation shortfall without parsing message strings.  Every error:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        records = [StockRecord.from_payload(row) for row in rows]
    except Exception as e:
        if "locationId" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        records = [StockRecord.from_payload(row) for row in rows]
    except InvalidStockRecordError as e:
        log.warning("bad row", extra={"field": e.field, "code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- StockRecordError
    |   +-- InvalidStockRecordError
    |
    +-- AllocationError
    |   +-- InsufficientStockError
    |
    +-- ConfigurationError
    |   +-- InvalidThresholdsError
    |
    +-- ViewStateError
        +-- InvalidLoadTransitionError
        +-- UnknownLoadDomainError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Stock record    | INVALID_STOCK_RECORD        | Required key missing or unparseable
----------------|-----------------------------|-----------------------------------------
Allocation      | INSUFFICIENT_STOCK          | FEFO request exceeds available stock
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_THRESHOLDS          | Expiry thresholds negative or inverted
----------------|-----------------------------|-----------------------------------------
View state      | INVALID_LOAD_TRANSITION     | Illegal Idle/Loading/Loaded/Failed move
                | UNKNOWN_LOAD_DOMAIN         | Data domain not tracked by the view
"""

from __future__ import annotations


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Stock record exceptions


class StockRecordError(InventoryKernelError):
    """Base exception for stock row errors."""

    code: str = "STOCK_RECORD_ERROR"


class InvalidStockRecordError(StockRecordError):
    """
    A stock row is missing a required key or carries an unparseable value.

    Raised at parse/construction time so that aggregation never sees a
    malformed row.
    """

    code: str = "INVALID_STOCK_RECORD"

    def __init__(self, field: str, reason: str, item_id: str | None = None):
        self.field = field
        self.reason = reason
        self.item_id = item_id
        suffix = f" (item {item_id})" if item_id else ""
        super().__init__(f"Invalid stock record field '{field}': {reason}{suffix}")


# Allocation exceptions


class AllocationError(InventoryKernelError):
    """Base exception for batch allocation errors."""

    code: str = "ALLOCATION_ERROR"


class InsufficientStockError(AllocationError):
    """Available stock at the location cannot cover the requested quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        location_id: str,
        requested_quantity: str,
        available_quantity: str,
    ):
        self.item_id = item_id
        self.location_id = location_id
        self.requested_quantity = requested_quantity
        self.available_quantity = available_quantity
        super().__init__(
            f"Insufficient stock for item {item_id} at {location_id}: "
            f"requested {requested_quantity}, available {available_quantity}"
        )


# Configuration exceptions


class ConfigurationError(InventoryKernelError):
    """Base exception for engine configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidThresholdsError(ConfigurationError):
    """Expiry thresholds are negative or out of order."""

    code: str = "INVALID_THRESHOLDS"

    def __init__(self, critical_days: int, warning_days: int):
        self.critical_days = critical_days
        self.warning_days = warning_days
        super().__init__(
            f"Invalid expiry thresholds: critical_days={critical_days}, "
            f"warning_days={warning_days} (need 0 <= critical <= warning)"
        )


# View state exceptions


class ViewStateError(InventoryKernelError):
    """Base exception for view load-state errors."""

    code: str = "VIEW_STATE_ERROR"


class InvalidLoadTransitionError(ViewStateError):
    """A data domain was moved between load states illegally."""

    code: str = "INVALID_LOAD_TRANSITION"

    def __init__(self, domain: str, current: str, target: str):
        self.domain = domain
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid load transition for '{domain}': {current} -> {target}"
        )


class UnknownLoadDomainError(ViewStateError):
    """The requested data domain is not tracked."""

    code: str = "UNKNOWN_LOAD_DOMAIN"

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Unknown load domain: {domain}")
