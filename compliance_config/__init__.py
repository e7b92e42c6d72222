"""
compliance_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.

Architecture position:
    Configuration.  Sits beside ``compliance_kernel``; the kernel only
    imports it for type hints.  Services receive the values they need
    (database URL, preview count, reporting switches) as constructor
    arguments.

Failure modes:
    - ``FileNotFoundError`` -- configuration file not found.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``COMPLIANCE_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from compliance_config.loader import load_config
from compliance_config.schema import (
    ComplianceConfig,
    DatabaseSettings,
    ReportingSettings,
)

_logger = logging.getLogger("compliance_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> ComplianceConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a configuration file.  Defaults to
            ``compliance_config/sets/default.yaml``.

    Returns:
        A frozen ``ComplianceConfig``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    config = load_config(config_path)

    _logger.info(
        "COMPLIANCE_CONFIG_TRACE",
        extra={
            "trace_type": "COMPLIANCE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "ComplianceConfig",
    "DatabaseSettings",
    "ReportingSettings",
]
