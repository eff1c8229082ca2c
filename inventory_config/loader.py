"""
Configuration Loader (``inventory_config.loader``).

Turns a YAML document into an ``InventoryEngineConfig``.  Application code
goes through ``inventory_config.get_active_config()`` instead.

Absent keys take the schema defaults; present keys must be integers (or
integer strings).  The checksum is taken over the raw document with sorted
keys, so reordering a file does not change it.

Errors: a missing file raises ``FileNotFoundError`` and bad YAML raises
``yaml.YAMLError``.  A document that is not a mapping, or a non-integer
value, raises ``ValueError``.  Bad thresholds raise ``InvalidThresholdsError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import InventoryEngineConfig

_DEFAULTS = InventoryEngineConfig()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Read one YAML document; an empty file reads as an empty mapping."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def _int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Config value '{key}' must be an integer, got {value!r}")
    return int(value)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> InventoryEngineConfig:
    """
    Parse an ``InventoryEngineConfig`` from a dict.

    Postconditions:
        - Returns a frozen config whose ``checksum`` covers ``data``.
    Raises:
        ValueError: if a value is not an integer.
        InvalidThresholdsError: if the expiry thresholds are inconsistent.
    """
    expiry = data.get("expiry") or {}
    summaries = data.get("stock_summaries") or {}

    return InventoryEngineConfig(
        config_id=str(data.get("config_id", _DEFAULTS.config_id)),
        version=_int(data, "version", _DEFAULTS.version),
        critical_days=_int(expiry, "critical_days", _DEFAULTS.critical_days),
        warning_days=_int(expiry, "warning_days", _DEFAULTS.warning_days),
        expiry_alert_days_ahead=_int(
            expiry, "alert_days_ahead", _DEFAULTS.expiry_alert_days_ahead
        ),
        summary_fetch_limit=_int(summaries, "fetch_limit", _DEFAULTS.summary_fetch_limit),
        max_fetch_workers=_int(summaries, "max_workers", _DEFAULTS.max_fetch_workers),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> InventoryEngineConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))
