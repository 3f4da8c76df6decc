"""
Tests for runtime settings (``expense_config``).

Covers get_active_config() on the shipped settings file, defaults for
missing sections, value validation, checksum stability, the
EXPENSE_CONFIG_TRACE audit log and the config -> kernel bridges.
"""

import logging
from pathlib import Path

import pytest
import yaml

from expense_config import DEFAULT_SETTINGS_PATH, get_active_config
from expense_config.bridges import build_routing_limits
from expense_config.loader import compute_checksum, load_yaml_file, log_level, parse_config
from expense_config.schema import ExpenseConfig, RoutingSettings
from expense_kernel.services.lookup_guard import RoutingLimits


def write_settings(tmp_path: Path, data) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestGetActiveConfig:

    def test_shipped_settings_load(self):
        config = get_active_config()

        assert isinstance(config, ExpenseConfig)
        assert config.source_path == str(DEFAULT_SETTINGS_PATH)
        assert config.routing == RoutingSettings(
            max_hierarchy_depth=32, lookup_timeout_seconds=5.0, read_retry_attempts=3,
        )
        assert len(config.checksum) == 64

    def test_custom_path(self, tmp_path):
        path = write_settings(tmp_path, {
            "database": {"url": "postgresql://u:p@db/expense", "statement_timeout_ms": 2500},
            "routing": {"max_hierarchy_depth": 8},
        })

        config = get_active_config(path)

        assert config.database.url == "postgresql://u:p@db/expense"
        assert config.database.statement_timeout_ms == 2500
        assert config.routing.max_hierarchy_depth == 8
        assert config.routing.read_retry_attempts == 3

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = get_active_config(path)

        assert config.routing == RoutingSettings()
        assert config.logging.level == "INFO"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_trace_logged(self, tmp_path, captured_logs):
        path = write_settings(tmp_path, {"routing": {"read_retry_attempts": 5}})

        config = get_active_config(path)

        trace = next(r for r in captured_logs() if r["message"] == "EXPENSE_CONFIG_TRACE")
        assert trace["checksum"] == config.checksum
        assert trace["read_retry_attempts"] == 5
        assert trace["logger"] == "expense_kernel.config"


class TestValidation:

    @pytest.mark.parametrize("data", [
        {"routing": {"max_hierarchy_depth": 0}},
        {"routing": {"max_hierarchy_depth": "deep"}},
        {"routing": {"max_hierarchy_depth": True}},
        {"routing": {"lookup_timeout_seconds": 0}},
        {"routing": {"read_retry_attempts": -1}},
        {"database": {"url": ""}},
        {"database": {"echo": "yes"}},
        {"database": {"pool_size": 0}},
        {"database": {"statement_timeout_ms": 0}},
        {"logging": {"level": "LOUD"}},
        {"routing": ["not", "a", "mapping"]},
    ])
    def test_invalid_values(self, tmp_path, data):
        with pytest.raises(ValueError):
            get_active_config(write_settings(tmp_path, data))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_integer_timeout_accepted(self):
        config = parse_config({"routing": {"lookup_timeout_seconds": 2}})
        assert config.routing.lookup_timeout_seconds == 2.0

    def test_log_level_case_insensitive(self):
        config = parse_config({"logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"
        assert log_level(config) == logging.DEBUG


class TestChecksum:

    def test_key_order_independent(self):
        a = {"routing": {"max_hierarchy_depth": 4, "read_retry_attempts": 2}}
        b = {"routing": {"read_retry_attempts": 2, "max_hierarchy_depth": 4}}
        assert compute_checksum(a) == compute_checksum(b)

    def test_changes_with_content(self):
        assert compute_checksum({"x": 1}) != compute_checksum({"x": 2})


class TestBridges:

    def test_routing_limits(self):
        config = parse_config({"routing": {
            "max_hierarchy_depth": 6,
            "lookup_timeout_seconds": 1.5,
            "read_retry_attempts": 4,
        }})

        assert build_routing_limits(config) == RoutingLimits(
            max_hierarchy_depth=6, lookup_timeout_seconds=1.5, read_retry_attempts=4,
        )
