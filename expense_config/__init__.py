"""
expense_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``ExpenseConfig``.

Architecture position:
    Configuration.  Sits above ``expense_kernel`` and ``expense_engines``.
    The kernel must never import from ``expense_config``; ``bridges``
    translates settings into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- a setting is out of range or of the wrong type.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``EXPENSE_CONFIG_TRACE`` log entry carrying the source path and
    checksum of the loaded settings.
"""

from __future__ import annotations

import logging
from pathlib import Path

from expense_config.loader import load_yaml_file, parse_config
from expense_config.schema import (
    DatabaseSettings,
    ExpenseConfig,
    LoggingSettings,
    RoutingSettings,
)

_logger = logging.getLogger("expense_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


def get_active_config(config_path: Path | str | None = None) -> ExpenseConfig:
    """Load and validate the settings file.

    Args:
        config_path: Override path to a settings YAML file.  Defaults to
            ``expense_config/settings.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    config = parse_config(load_yaml_file(path), source_path=str(path))

    _logger.info(
        "EXPENSE_CONFIG_TRACE",
        extra={
            "trace_type": "EXPENSE_CONFIG_TRACE",
            "source_path": config.source_path,
            "checksum": config.checksum,
            "max_hierarchy_depth": config.routing.max_hierarchy_depth,
            "lookup_timeout_seconds": config.routing.lookup_timeout_seconds,
            "read_retry_attempts": config.routing.read_retry_attempts,
        },
    )
    return config


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "DatabaseSettings",
    "ExpenseConfig",
    "LoggingSettings",
    "RoutingSettings",
    "get_active_config",
]
