"""
Settings loader (``expense_config.loader``).

Responsibility
--------------
Reads the YAML settings file and parses each section into the typed
``expense_config.schema`` dataclasses.  Runtime callers go through
``expense_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Absent sections and keys take the schema defaults; present values are
  type- and range-checked.
* ``compute_checksum`` is deterministic for identical data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from expense_config.schema import (
    DatabaseSettings,
    ExpenseConfig,
    LoggingSettings,
    RoutingSettings,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping at the top level")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Settings section '{name}' must be a mapping")
    return section


def _int(section: str, key: str, value: Any, minimum: int) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{section}.{key} must be >= {minimum}, got {value}")
    return value


def _positive_float(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{section}.{key} must be a number, got {value!r}")
    if value <= 0:
        raise ValueError(f"{section}.{key} must be positive, got {value}")
    return float(value)


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    """Parse the ``database`` section."""
    defaults = DatabaseSettings()
    url = data.get("url", defaults.url)
    if not isinstance(url, str) or not url:
        raise ValueError("database.url must be a non-empty string")

    echo = data.get("echo", defaults.echo)
    if not isinstance(echo, bool):
        raise ValueError(f"database.echo must be a boolean, got {echo!r}")

    timeout = data.get("statement_timeout_ms", defaults.statement_timeout_ms)
    if timeout is not None:
        timeout = _int("database", "statement_timeout_ms", timeout, 1)

    return DatabaseSettings(
        url=url,
        echo=echo,
        pool_size=_int("database", "pool_size", data.get("pool_size", defaults.pool_size), 1),
        statement_timeout_ms=timeout,
    )


def parse_routing(data: dict[str, Any]) -> RoutingSettings:
    """Parse the ``routing`` section."""
    defaults = RoutingSettings()
    return RoutingSettings(
        max_hierarchy_depth=_int(
            "routing", "max_hierarchy_depth",
            data.get("max_hierarchy_depth", defaults.max_hierarchy_depth), 1,
        ),
        lookup_timeout_seconds=_positive_float(
            "routing", "lookup_timeout_seconds",
            data.get("lookup_timeout_seconds", defaults.lookup_timeout_seconds),
        ),
        read_retry_attempts=_int(
            "routing", "read_retry_attempts",
            data.get("read_retry_attempts", defaults.read_retry_attempts), 1,
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any], source_path: str | None = None) -> ExpenseConfig:
    """Parse a complete settings mapping into an ``ExpenseConfig``."""
    return ExpenseConfig(
        database=parse_database(_section(data, "database")),
        routing=parse_routing(_section(data, "routing")),
        logging=parse_logging(_section(data, "logging")),
        source_path=source_path,
        checksum=compute_checksum(data),
    )


def log_level(config: ExpenseConfig) -> int:
    """The configured level as a ``logging`` constant."""
    return logging.getLevelName(config.logging.level)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
