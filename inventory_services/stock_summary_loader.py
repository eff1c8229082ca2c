"""
inventory_services.stock_summary_loader -- Bounded concurrent fetch of per-item stock.

Responsibility:
    Fetches the stock rows of each listed item from the inventory backend,
    aggregates them into a ``StockSummary`` per item, and loads expiry
    alerts for the item-list filter.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Sources are injected as Protocols; this module never constructs a
    backend client.

Invariants enforced:
    - Only the first ``fetch_limit`` item ids are fetched.
    - Each item fetch is isolated: an exception in one fetch does not abort
      the others.  The failure is recorded on its ``SummaryFetchResult`` and
      a zero summary is exposed for display.
    - ``load`` returns only after every submitted fetch has completed.
    - Results keep the order of the input item ids, whatever the completion
      order.
    - Worker threads see the caller's LogContext fields.

Failure modes:
    - Per-item fetch or parse error: caught, logged as
      ``stock_summary_fetch_failed``, recorded on the result.
    - Alert-load error: caught, logged as ``expiry_alert_load_failed``; the
      loader returns no alerts.  A malformed alert row is skipped and logged.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from inventory_engines.aggregation import summarize
from inventory_engines.expiry import ExpiryRiskClassifier
from inventory_kernel.domain.stock import ExpiryAlert, StockRecord, StockSummary
from inventory_kernel.exceptions import InvalidStockRecordError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.stock_summary_loader")


class StockSource(Protocol):
    """Backend call returning the stock rows of one item."""

    def get_stock_by_item(self, item_id: str) -> Sequence[Mapping[str, Any]]: ...


class ExpiryAlertSource(Protocol):
    """Backend call returning expiry alert rows within a look-ahead window."""

    def get_expiry_alerts(self, days_ahead: int) -> Sequence[Mapping[str, Any]]: ...


class ItemSource(Protocol):
    """Backend call returning the item list, optionally pre-filtered."""

    def get_all_items(
        self,
        search: str | None = None,
        category: str | None = None,
    ) -> Sequence[Mapping[str, Any]]: ...


@dataclass(frozen=True)
class SummaryFetchResult:
    """Outcome of one item's stock fetch."""

    item_id: str
    summary: StockSummary | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def display_summary(self) -> StockSummary:
        """The fetched summary, or a zero summary when the fetch failed."""
        return self.summary if self.summary is not None else StockSummary.zero()


@dataclass(frozen=True)
class SummaryLoadResult:
    """All fetch outcomes of one ``StockSummaryLoader.load`` call."""

    results: tuple[SummaryFetchResult, ...]
    skipped_item_ids: tuple[str, ...] = ()

    @property
    def summaries(self) -> dict[str, StockSummary]:
        """Display summaries keyed by item id, zero-filled for failures."""
        return {r.item_id: r.display_summary for r in self.results}

    @property
    def failures(self) -> tuple[SummaryFetchResult, ...]:
        return tuple(r for r in self.results if not r.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


class StockSummaryLoader:
    """Concurrent per-item stock fetch with a cap and per-item isolation.

    Usage:
        loader = StockSummaryLoader(backend, fetch_limit=100, max_workers=8)
        result = loader.load([item["id"] for item in items])
        result.summaries["item-1"].total_on_hand
    """

    def __init__(
        self,
        stock_source: StockSource,
        fetch_limit: int = 100,
        max_workers: int = 8,
    ) -> None:
        if fetch_limit < 0:
            raise ValueError(f"fetch_limit must be >= 0, got {fetch_limit}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._source = stock_source
        self._fetch_limit = fetch_limit
        self._max_workers = max_workers

    def _fetch_one(self, item_id: str) -> SummaryFetchResult:
        try:
            rows = self._source.get_stock_by_item(item_id)
            records = [StockRecord.from_payload(row, item_id=item_id) for row in rows]
            return SummaryFetchResult(item_id=item_id, summary=summarize(records))
        except Exception as exc:
            logger.warning("stock_summary_fetch_failed", extra={
                "item_id": item_id,
                "error_type": type(exc).__name__,
                "error": str(exc),
            })
            return SummaryFetchResult(
                item_id=item_id,
                error=f"{type(exc).__name__}: {exc}",
            )

    def load(self, item_ids: Sequence[str]) -> SummaryLoadResult:
        """Fetch and summarize stock for up to ``fetch_limit`` items.

        Postconditions:
            - ``len(results) == min(len(item_ids), fetch_limit)``.
            - Never raises for a failing item; see ``SummaryFetchResult.error``.
        """
        item_ids = list(item_ids)
        capped = item_ids[: self._fetch_limit]
        skipped = tuple(item_ids[self._fetch_limit:])

        start = time.monotonic()
        if capped:
            workers = min(self._max_workers, len(capped))
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="stock-summary",
            ) as executor:
                # One copy per fetch: a Context cannot be entered by two threads at once.
                contexts = [copy_context() for _ in capped]
                results = tuple(executor.map(
                    lambda ctx, item_id: ctx.run(self._fetch_one, item_id),
                    contexts,
                    capped,
                ))
        else:
            results = ()

        load_result = SummaryLoadResult(results=results, skipped_item_ids=skipped)
        logger.info("stock_summaries_loaded", extra={
            "requested_count": len(item_ids),
            "fetched_count": len(results),
            "failed_count": len(load_result.failures),
            "skipped_count": len(skipped),
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
        })
        return load_result


class ExpiryAlertLoader:
    """Loads expiry alerts for the item-list filter, degrading to none."""

    def __init__(
        self,
        alert_source: ExpiryAlertSource,
        classifier: ExpiryRiskClassifier | None = None,
    ) -> None:
        self._source = alert_source
        self._classifier = classifier or ExpiryRiskClassifier()

    def load(self, days_ahead: int, reference_date: date) -> tuple[ExpiryAlert, ...]:
        try:
            rows = self._source.get_expiry_alerts(days_ahead)
        except Exception as exc:
            logger.error("expiry_alert_load_failed", extra={
                "days_ahead": days_ahead,
                "error_type": type(exc).__name__,
                "error": str(exc),
            })
            return ()

        alerts: list[ExpiryAlert] = []
        for row in rows:
            try:
                alerts.append(self._classifier.alert_from_payload(row, reference_date))
            except (InvalidStockRecordError, ValueError, TypeError) as exc:
                logger.warning("expiry_alert_row_skipped", extra={
                    "item_id": row.get("itemId") if isinstance(row, Mapping) else None,
                    "error_code": getattr(exc, "code", None),
                    "error": str(exc),
                })

        logger.debug("expiry_alerts_loaded", extra={
            "days_ahead": days_ahead,
            "row_count": len(rows),
            "alert_count": len(alerts),
        })
        return tuple(alerts)
