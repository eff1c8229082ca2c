"""
inventory_services.catalog_view -- Item list orchestration.

Responsibility:
    Builds the filtered, sorted item list: fetches the items, loads capped
    per-item stock summaries and, when an expiry-risk filter is active, the
    expiry alerts, reduces alerts to the worst risk per item, then applies
    the filter and sort engines.

Architecture position:
    Services -- orchestration over engines.  Reads "today" from an injected
    Clock and thresholds from an injected InventoryEngineConfig.

Failure modes:
    - Item list fetch error: propagates to the caller.
    - Per-item stock fetch error: isolated; the item gets a zero summary and
      its id is listed in ``CatalogView.failed_item_ids``.
    - Expiry alert load error: degrades to an empty risk map, so an active
      expiry filter matches nothing.
    - ValueError for an ``ok`` expiry filter: alerts only cover the look-ahead
      window, so items beyond it have no risk entry to match.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass, field

from inventory_config import InventoryEngineConfig
from inventory_engines.expiry import ExpiryRiskClassifier, worst_risk_by_item
from inventory_engines.filtering import (
    CatalogItem,
    ItemFilterCriteria,
    SortState,
    filter_and_sort,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.stock import ExpiryAlert, ExpiryRisk, ExpiryStatus, StockSummary
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_services.stock_summary_loader import (
    ExpiryAlertLoader,
    ExpiryAlertSource,
    ItemSource,
    StockSource,
    StockSummaryLoader,
)

logger = get_logger("services.catalog_view")

# Risk buckets the item list offers; "ok" would need alerts beyond the
# look-ahead window.
FILTERABLE_EXPIRY_RISKS = frozenset({
    ExpiryStatus.EXPIRED,
    ExpiryStatus.CRITICAL,
    ExpiryStatus.WARNING,
})


@dataclass(frozen=True)
class CatalogView:
    """One rendering of the item list."""

    items: tuple[CatalogItem, ...]
    total_item_count: int
    stock_summaries: dict[str, StockSummary] = field(default_factory=dict)
    expiry_risks: dict[str, ExpiryRisk] = field(default_factory=dict)
    failed_item_ids: tuple[str, ...] = ()


class CatalogViewService:
    """Loads and composes the item list view.

    Usage:
        service = CatalogViewService(backend, backend, backend,
                                     config=get_active_config())
        view = service.load(ItemFilterCriteria(stock_status="low-stock"),
                            SortState(column="name"))
    """

    def __init__(
        self,
        item_source: ItemSource,
        stock_source: StockSource,
        alert_source: ExpiryAlertSource,
        config: InventoryEngineConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or InventoryEngineConfig()
        self._clock = clock or SystemClock()
        self._items = item_source
        self._classifier = ExpiryRiskClassifier(self._config.expiry_thresholds)
        self._summary_loader = StockSummaryLoader(
            stock_source,
            fetch_limit=self._config.summary_fetch_limit,
            max_workers=self._config.max_fetch_workers,
        )
        self._alert_loader = ExpiryAlertLoader(alert_source, self._classifier)

    def _load_alerts(self) -> tuple[ExpiryAlert, ...]:
        return self._alert_loader.load(
            self._config.expiry_alert_days_ahead, self._clock.today(),
        )

    def load(
        self,
        criteria: ItemFilterCriteria,
        sort_state: SortState | None = None,
    ) -> CatalogView:
        """Fetch, filter and sort the item list for ``criteria``.

        Raises:
            ValueError: ``criteria.expiry_risk`` is not one of
                ``FILTERABLE_EXPIRY_RISKS``.
        """
        if (
            criteria.expiry_risk is not None
            and criteria.expiry_risk not in FILTERABLE_EXPIRY_RISKS
        ):
            raise ValueError(
                f"Item list cannot filter on expiry risk '{criteria.expiry_risk.value}'; "
                f"expected one of {sorted(s.value for s in FILTERABLE_EXPIRY_RISKS)}"
            )
        start = time.monotonic()
        rows = self._items.get_all_items(
            search=criteria.search_term or None,
            category=criteria.category or None,
        )
        items = [CatalogItem.from_payload(row) for row in rows]
        item_ids = [item.item_id for item in items]

        with LogContext.bind(view_key="catalog"):
            if criteria.needs_expiry_risks:
                with ThreadPoolExecutor(max_workers=1, thread_name_prefix="expiry-alerts") as pool:
                    alerts_future = pool.submit(copy_context().run, self._load_alerts)
                    summaries = self._summary_loader.load(item_ids)
                    alerts = alerts_future.result()
            else:
                summaries = self._summary_loader.load(item_ids)
                alerts = ()

            risks = worst_risk_by_item(alerts)
            visible = filter_and_sort(
                items,
                criteria,
                sort_state,
                stock_summaries=summaries.summaries,
                expiry_risks=risks,
                thresholds=self._config.expiry_thresholds,
            )

            logger.info("catalog_view_loaded", extra={
                "item_count": len(items),
                "visible_count": len(visible),
                "active_filters": list(criteria.active_filters),
                "sort_column": sort_state.column.value if sort_state and sort_state.column else None,
                "failed_summary_count": len(summaries.failures),
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
            })

        return CatalogView(
            items=tuple(visible),
            total_item_count=len(items),
            stock_summaries=summaries.summaries,
            expiry_risks=risks,
            failed_item_ids=tuple(r.item_id for r in summaries.failures),
        )
