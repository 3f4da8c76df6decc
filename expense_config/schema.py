"""
Expense settings schema.

Frozen dataclasses that ``expense_config.loader`` builds from the YAML
settings file.  Defaults here are the values used when a section or key
is absent.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20
    statement_timeout_ms: int | None = None


@dataclass(frozen=True)
class RoutingSettings:
    """Bounds on a single approver resolution."""

    max_hierarchy_depth: int = 32
    lookup_timeout_seconds: float = 5.0
    read_retry_attempts: int = 3


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class ExpenseConfig:
    """Complete runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    routing: RoutingSettings = field(default_factory=RoutingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source_path: str | None = None
    checksum: str = ""
