"""
Configuration Loader (``compliance_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``compliance_config.schema`` dataclasses.  The single public entry point
for runtime config is ``compliance_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys (``config_id``, ``version``) have no defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity.

Failure modes
-------------
* No such config set  -> ``FileNotFoundError``.
* Unparseable document  -> ``yaml.YAMLError``.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from compliance_config.schema import (
    DEFAULT_DATABASE_URL,
    DEFAULT_PREVIEW_COUNT,
    ComplianceConfig,
    DatabaseSettings,
    ReportingSettings,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Parse one config set document into a plain mapping.

    Raises:
        FileNotFoundError: no file at ``path``.
        yaml.YAMLError: the text is not valid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    url = data.get("url", DEFAULT_DATABASE_URL)
    if not isinstance(url, str) or not url:
        raise ValueError(f"database.url must be a non-empty string, got {url!r}")
    return DatabaseSettings(
        url=url,
        echo_sql=_parse_bool(data.get("echo_sql", False), "database.echo_sql"),
    )


def parse_reporting(data: dict[str, Any]) -> ReportingSettings:
    return ReportingSettings(
        late_completion_is_non_compliant=_parse_bool(
            data.get("late_completion_is_non_compliant", False),
            "reporting.late_completion_is_non_compliant",
        ),
    )


def parse_config(data: dict[str, Any]) -> ComplianceConfig:
    """
    Parse a ``ComplianceConfig`` from a YAML document.

    Raises:
        KeyError: if ``config_id`` or ``version`` is missing.
        ValueError: if a value has the wrong type or range.
    """
    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level: {data.get('log_level')!r}")

    preview_count = data.get("preview_count", DEFAULT_PREVIEW_COUNT)
    if isinstance(preview_count, bool) or not isinstance(preview_count, int) or preview_count < 1:
        raise ValueError(f"preview_count must be a positive integer, got {preview_count!r}")

    return ComplianceConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data.get("database") or {}),
        reporting=parse_reporting(data.get("reporting") or {}),
        log_level=log_level,
        preview_count=preview_count,
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ComplianceConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))
