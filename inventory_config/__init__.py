"""
inventory_config -- single public entrypoint for stock analytics configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``InventoryEngineConfig`` by injection and never read files themselves.

Architecture position:
    Configuration -- YAML-driven, sits above ``inventory_engines`` and below
    ``inventory_services``.  Engines MUST NEVER import from this package.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value does not parse.
    - ``InvalidThresholdsError`` -- inconsistent expiry thresholds.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying classification results to the thresholds in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.loader import load_config_file
from inventory_config.schema import InventoryEngineConfig

_logger = logging.getLogger("inventory_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> InventoryEngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration file.
            Defaults to inventory_config/sets/default.yaml.

    Returns:
        The parsed, validated InventoryEngineConfig.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "critical_days": config.critical_days,
            "warning_days": config.warning_days,
            "summary_fetch_limit": config.summary_fetch_limit,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "InventoryEngineConfig",
    "get_active_config",
]
