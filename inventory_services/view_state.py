"""
inventory_services.view_state -- Load state of the item detail view.

Responsibility:
    Tracks, per data domain (stock, batches, serials, expiry, variants), the
    load lifecycle of the currently selected item and sub-tab, and discards
    completions that belong to a superseded request.  Also decides which
    domains a sub-tab needs for an item, based on its tracking flags.

Architecture position:
    Services -- thin stateful shell.  Holds no business rules; the data it
    stores comes from the engines.

Invariants enforced:
    - Each domain moves through IDLE -> LOADING -> LOADED | FAILED; a new
      request may restart LOADING from any state.  Other transitions raise
      InvalidLoadTransitionError.
    - Every ``begin`` issues a strictly increasing token.  Only the latest
      token of a domain may complete it; older completions are dropped and
      reported as stale.
    - A domain is only dispatched for a sub-tab when the item's tracking
      flags enable it.

Failure modes:
    - UnknownLoadDomainError for a domain name outside LoadDomain.
    - InvalidLoadTransitionError for a transition outside ALLOWED_TRANSITIONS.
    - ValueError for an unknown sub-tab name.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Any

from inventory_kernel.exceptions import (
    InvalidLoadTransitionError,
    UnknownLoadDomainError,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.view_state")


@unique
class LoadDomain(str, Enum):
    """Independently loaded data domains of the item detail view."""

    STOCK = "stock"
    BATCHES = "batches"
    SERIALS = "serials"
    EXPIRY = "expiry"
    VARIANTS = "variants"


@unique
class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


# Allowed status transitions (from -> set of valid next states)
ALLOWED_TRANSITIONS: dict[LoadStatus, frozenset[LoadStatus]] = {
    LoadStatus.IDLE: frozenset({LoadStatus.LOADING}),
    LoadStatus.LOADING: frozenset({LoadStatus.LOADING, LoadStatus.LOADED, LoadStatus.FAILED, LoadStatus.IDLE}),
    LoadStatus.LOADED: frozenset({LoadStatus.LOADING, LoadStatus.IDLE}),
    LoadStatus.FAILED: frozenset({LoadStatus.LOADING, LoadStatus.IDLE}),
}


def validate_transition(current: LoadStatus, target: LoadStatus) -> bool:
    """Check if a load status transition is valid."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@unique
class SubTab(str, Enum):
    OVERVIEW = "overview"
    STOCK = "stock"
    LOCATIONS = "locations"
    TRACKING = "tracking"
    BATCHES = "batches"
    SERIALS = "serials"
    EXPIRY = "expiry"
    VARIANTS = "variants"
    HISTORY = "history"


@dataclass(frozen=True)
class ItemTrackingFlags:
    """Tracking features enabled on an item."""

    requires_batch_tracking: bool = False
    requires_serial_tracking: bool = False
    has_expiry_date: bool = False
    has_variants: bool = False

    @classmethod
    def from_payload(cls, item: Mapping[str, Any]) -> ItemTrackingFlags:
        flags = item.get("industryFlags") or {}
        return cls(
            requires_batch_tracking=bool(flags.get("requiresBatchTracking")),
            requires_serial_tracking=bool(flags.get("requiresSerialTracking")),
            has_expiry_date=bool(flags.get("hasExpiryDate")),
            has_variants=bool(item.get("hasVariants")),
        )

    def enabled(self, domain: LoadDomain) -> bool:
        return {
            LoadDomain.STOCK: True,
            LoadDomain.BATCHES: self.requires_batch_tracking,
            LoadDomain.SERIALS: self.requires_serial_tracking,
            LoadDomain.EXPIRY: self.has_expiry_date,
            LoadDomain.VARIANTS: self.has_variants,
        }[domain]


_TRACKING_ORDER = (LoadDomain.BATCHES, LoadDomain.SERIALS, LoadDomain.EXPIRY)

_SUB_TAB_DOMAINS: dict[SubTab, tuple[LoadDomain, ...]] = {
    SubTab.OVERVIEW: (LoadDomain.VARIANTS, *_TRACKING_ORDER),
    SubTab.STOCK: (LoadDomain.STOCK,),
    SubTab.LOCATIONS: (LoadDomain.STOCK,),
    SubTab.BATCHES: (LoadDomain.BATCHES,),
    SubTab.SERIALS: (LoadDomain.SERIALS,),
    SubTab.EXPIRY: (LoadDomain.EXPIRY,),
    SubTab.VARIANTS: (LoadDomain.VARIANTS,),
    SubTab.HISTORY: (),
}


def domains_for_view(flags: ItemTrackingFlags, sub_tab: SubTab | str) -> tuple[LoadDomain, ...]:
    """
    Data domains to fetch when ``sub_tab`` of an item is shown.

    The overview loads every tracking domain the item enables.  The
    tracking tab loads the first enabled of batches, serials and expiry.
    """
    sub_tab = SubTab(sub_tab)
    if sub_tab is SubTab.TRACKING:
        for domain in _TRACKING_ORDER:
            if flags.enabled(domain):
                return (domain,)
        return ()
    return tuple(d for d in _SUB_TAB_DOMAINS[sub_tab] if flags.enabled(d))


@dataclass(frozen=True)
class ViewKey:
    """The selection a request was issued for."""

    item_id: str
    sub_tab: SubTab

    def __post_init__(self) -> None:
        if not isinstance(self.sub_tab, SubTab):
            object.__setattr__(self, "sub_tab", SubTab(self.sub_tab))

    def __str__(self) -> str:
        return f"{self.item_id}/{self.sub_tab.value}"


@dataclass(frozen=True)
class LoadTicket:
    """Handle returned by ``begin``; pass it back to complete the load."""

    domain: LoadDomain
    view_key: ViewKey
    token: int


@dataclass(frozen=True)
class DomainState:
    status: LoadStatus = LoadStatus.IDLE
    view_key: ViewKey | None = None
    token: int | None = None
    data: Any = None
    error: str | None = None


def _as_domain(domain: LoadDomain | str) -> LoadDomain:
    if isinstance(domain, LoadDomain):
        return domain
    try:
        return LoadDomain(domain)
    except ValueError:
        raise UnknownLoadDomainError(str(domain)) from None


class ViewLoadTracker:
    """Per-domain load state with stale-completion protection.

    Thread-safe: completions may arrive from worker threads.

    Usage:
        tracker = ViewLoadTracker()
        ticket = tracker.begin("stock", ViewKey("item-1", "stock"))
        ...
        if tracker.complete(ticket, summary):
            render(tracker.state("stock").data)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._states: dict[LoadDomain, DomainState] = {d: DomainState() for d in LoadDomain}

    def state(self, domain: LoadDomain | str) -> DomainState:
        with self._lock:
            return self._states[_as_domain(domain)]

    def _transition(self, domain: LoadDomain, target: LoadStatus, **changes: Any) -> None:
        current = self._states[domain]
        if not validate_transition(current.status, target):
            raise InvalidLoadTransitionError(domain.value, current.status.value, target.value)
        self._states[domain] = replace(current, status=target, **changes)

    def begin(self, domain: LoadDomain | str, view_key: ViewKey) -> LoadTicket:
        """Start (or restart) loading a domain for ``view_key``."""
        domain = _as_domain(domain)
        with self._lock:
            token = next(self._tokens)
            self._transition(
                domain, LoadStatus.LOADING,
                view_key=view_key, token=token, data=None, error=None,
            )
        logger.debug("view_load_started", extra={
            "domain": domain.value,
            "view_key": str(view_key),
            "token": token,
        })
        return LoadTicket(domain=domain, view_key=view_key, token=token)

    def _finish(self, ticket: LoadTicket, target: LoadStatus, **changes: Any) -> bool:
        with self._lock:
            current = self._states[ticket.domain]
            if current.token != ticket.token:
                logger.debug("view_load_stale_discarded", extra={
                    "domain": ticket.domain.value,
                    "view_key": str(ticket.view_key),
                    "token": ticket.token,
                    "current_token": current.token,
                })
                return False
            self._transition(ticket.domain, target, **changes)
        return True

    def complete(self, ticket: LoadTicket, data: Any) -> bool:
        """Store loaded data; False when the ticket was superseded."""
        return self._finish(ticket, LoadStatus.LOADED, data=data)

    def fail(self, ticket: LoadTicket, error: BaseException | str) -> bool:
        """Record a failed load; False when the ticket was superseded."""
        message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
        accepted = self._finish(ticket, LoadStatus.FAILED, error=message)
        if accepted:
            logger.warning("view_load_failed", extra={
                "domain": ticket.domain.value,
                "view_key": str(ticket.view_key),
                "error": message,
            })
        return accepted

    def reset(self, domain: LoadDomain | str | None = None) -> None:
        """Return one domain (or all) to IDLE; in-flight tickets become stale."""
        with self._lock:
            domains = list(LoadDomain) if domain is None else [_as_domain(domain)]
            for d in domains:
                if self._states[d].status is not LoadStatus.IDLE:
                    self._transition(d, LoadStatus.IDLE, view_key=None, token=None, data=None, error=None)
