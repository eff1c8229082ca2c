"""
inventory_services -- Orchestration shell over the stock engines.

Responsibility:
    Fetches from injected backend sources, isolates per-item failures,
    gates detail-view loads by selection and request token, and composes
    the engines into the item list view.

Architecture position:
    Services -- may import inventory_engines, inventory_kernel and
    inventory_config.  Engines never import from here.
"""

from inventory_services.catalog_view import CatalogView, CatalogViewService
from inventory_services.stock_summary_loader import (
    ExpiryAlertLoader,
    ExpiryAlertSource,
    ItemSource,
    StockSource,
    StockSummaryLoader,
    SummaryFetchResult,
    SummaryLoadResult,
)
from inventory_services.view_state import (
    ALLOWED_TRANSITIONS,
    DomainState,
    ItemTrackingFlags,
    LoadDomain,
    LoadStatus,
    LoadTicket,
    SubTab,
    ViewKey,
    ViewLoadTracker,
    domains_for_view,
    validate_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "CatalogView",
    "CatalogViewService",
    "DomainState",
    "ExpiryAlertLoader",
    "ExpiryAlertSource",
    "ItemSource",
    "ItemTrackingFlags",
    "LoadDomain",
    "LoadStatus",
    "LoadTicket",
    "StockSource",
    "StockSummaryLoader",
    "SubTab",
    "SummaryFetchResult",
    "SummaryLoadResult",
    "ViewKey",
    "ViewLoadTracker",
    "domains_for_view",
    "validate_transition",
]
