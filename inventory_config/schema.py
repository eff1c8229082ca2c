"""
InventoryEngineConfig schema.

Defines the runtime configuration of the stock engines and the loading
shell.  YAML files are parsed into this type by the loader; the single
runtime entrypoint is ``inventory_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_engines.expiry import ExpiryThresholds


@dataclass(frozen=True)
class InventoryEngineConfig:
    """Thresholds and fan-out limits for stock analytics."""

    config_id: str = "default"
    version: int = 1
    critical_days: int = 7
    warning_days: int = 30
    expiry_alert_days_ahead: int = 30
    summary_fetch_limit: int = 100
    max_fetch_workers: int = 8
    checksum: str = ""

    def __post_init__(self) -> None:
        # Raises InvalidThresholdsError for negative/inverted thresholds.
        ExpiryThresholds(self.critical_days, self.warning_days)
        if self.summary_fetch_limit < 0:
            raise ValueError(
                f"summary_fetch_limit must be >= 0, got {self.summary_fetch_limit}"
            )
        if self.max_fetch_workers < 1:
            raise ValueError(
                f"max_fetch_workers must be >= 1, got {self.max_fetch_workers}"
            )

    @property
    def expiry_thresholds(self) -> ExpiryThresholds:
        return ExpiryThresholds(
            critical_days=self.critical_days,
            warning_days=self.warning_days,
        )
