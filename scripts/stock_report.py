#!/usr/bin/env python3
"""
Print stock reports for a JSON export of stock rows.

The input file holds a list of stock rows as returned by the inventory
backend (camelCase keys, each with an ``itemId``).  The selected report is
written to stdout as JSON.

Usage:
  python3 scripts/stock_report.py rows.json summary
  python3 scripts/stock_report.py rows.json batch-risk [--as-of 2024-03-01] [--days-ahead 30]
  python3 scripts/stock_report.py rows.json locations
  python3 scripts/stock_report.py rows.json fefo --item ITEM --location LOC --quantity 12
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from inventory_config import get_active_config  # noqa: E402
from inventory_engines import (  # noqa: E402
    allocate_fefo,
    build_batch_expiry_risk,
    summarize_by_location,
    summarize_items,
)
from inventory_kernel.domain.clock import SystemClock  # noqa: E402
from inventory_kernel.domain.stock import StockRecord  # noqa: E402
from inventory_kernel.exceptions import InventoryKernelError  # noqa: E402
from inventory_kernel.logging_config import configure_logging  # noqa: E402


def load_records(path: Path) -> list[StockRecord]:
    with open(path, encoding="utf-8") as f:
        rows = json.load(f)
    return [StockRecord.from_payload(row) for row in rows]


def _dump(obj) -> None:
    json.dump(obj, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("rows", type=Path, help="JSON file with stock rows")
    parser.add_argument("report", choices=["summary", "batch-risk", "locations", "fefo"])
    parser.add_argument("--as-of", type=date.fromisoformat, default=None,
                        help="Reference date (default: today)")
    parser.add_argument("--days-ahead", type=int, default=None)
    parser.add_argument("--item")
    parser.add_argument("--location")
    parser.add_argument("--quantity")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(level=args.log_level, stream=sys.stderr)
    config = get_active_config(args.config)
    as_of = args.as_of or SystemClock().today()

    try:
        records = load_records(args.rows)

        if args.report == "summary":
            _dump({item_id: s.as_dict() for item_id, s in summarize_items(records).items()})
        elif args.report == "batch-risk":
            days_ahead = args.days_ahead
            if days_ahead is None:
                days_ahead = config.expiry_alert_days_ahead
            _dump([
                asdict(b)
                for b in build_batch_expiry_risk(
                    records, as_of, days_ahead, thresholds=config.expiry_thresholds,
                )
            ])
        elif args.report == "locations":
            _dump([asdict(r) for r in summarize_by_location(records)])
        else:
            if not (args.item and args.location and args.quantity):
                parser.error("fefo requires --item, --location and --quantity")
            _dump(asdict(allocate_fefo(records, args.item, args.location, args.quantity, as_of)))
    except InventoryKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
