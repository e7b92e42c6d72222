"""
ComplianceConfig schema.

The typed form of a configuration set.  YAML files are parsed into these
frozen dataclasses by the loader; nothing downstream reads YAML.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_PREVIEW_COUNT = 5


@dataclass(frozen=True)
class DatabaseSettings:
    """Where and how the kernel persists activities and tasks."""

    url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False


@dataclass(frozen=True)
class ReportingSettings:
    """Switches that change how compliance is reported, not how tasks move."""

    late_completion_is_non_compliant: bool = False


@dataclass(frozen=True)
class ComplianceConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    database: DatabaseSettings = DatabaseSettings()
    reporting: ReportingSettings = ReportingSettings()
    log_level: str = "INFO"
    preview_count: int = DEFAULT_PREVIEW_COUNT
    checksum: str = ""

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def echo_sql(self) -> bool:
        return self.database.echo_sql

    @property
    def late_completion_is_non_compliant(self) -> bool:
        return self.reporting.late_completion_is_non_compliant
