"""Tests for the JSON log format and request context (expense_kernel/logging_config.py)."""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from expense_kernel.domain.claim import ClaimStatus
from expense_kernel.exceptions import LookupTimeoutError, RoutingNotFoundError
from expense_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def json_stream():
    """Install a fresh JSON handler and return a reader for its lines."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream)

    def lines() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield lines

    reset_logging()
    configure_logging(level=logging.DEBUG)


def _log_exception(exc: Exception) -> None:
    try:
        raise exc
    except type(exc):
        get_logger("services.claim_service").error("routing_failed", exc_info=True)


class TestRecordShape:

    def test_envelope(self, json_stream):
        get_logger("services.claim_service").info("claim_submitted")

        (record,) = json_stream()
        assert record["message"] == "claim_submitted"
        assert record["level"] == "INFO"
        assert record["logger"] == "expense_kernel.services.claim_service"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_fields_are_top_level(self, json_stream):
        get_logger("engine").info(
            "approver_resolved", extra={"step_order": 2, "lookups": 3},
        )

        (record,) = json_stream()
        assert record["step_order"] == 2
        assert record["lookups"] == 3
        assert "args" not in record
        assert "levelno" not in record

    def test_domain_values_serialised(self, json_stream):
        approver = uuid4()
        get_logger("services").info("typed", extra={
            "approver_id": approver,
            "amount": Decimal("42.10"),
            "expense_date": date(2024, 1, 10),
            "submitted_at": datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            "status": ClaimStatus.PROCESSING,
        })

        (record,) = json_stream()
        assert record["approver_id"] == str(approver)
        assert record["amount"] == "42.10"
        assert record["expense_date"] == "2024-01-10"
        assert record["submitted_at"] == "2024-01-01T12:00:00+00:00"
        assert record["status"] == "Processing"

    def test_below_level_dropped(self, json_stream):
        log = get_logger("services")
        log.debug("noisy")
        log.warning("approver_not_found")

        assert [r["message"] for r in json_stream()] == ["approver_not_found"]


class TestExceptionFields:

    def test_routing_failure_attributes(self, json_stream):
        _log_exception(
            RoutingNotFoundError("c-1", "p-1", 2, "no_manager", "user u has no manager")
        )

        (record,) = json_stream()
        assert record["exc_type"] == "RoutingNotFoundError"
        assert record["exc_code"] == "ROUTING_NOT_FOUND"
        assert record["exc_step_order"] == 2
        assert record["exc_reason"] == "no_manager"
        assert "Traceback" in record["traceback"]

    def test_lookup_timeout_attributes(self, json_stream):
        _log_exception(LookupTimeoutError("get_manager_of", 5.0, 5.5))

        (record,) = json_stream()
        assert record["exc_code"] == "LOOKUP_TIMEOUT"
        assert record["exc_operation"] == "get_manager_of"
        assert record["exc_budget_seconds"] == 5.0

    def test_plain_exception_has_no_code(self, json_stream):
        _log_exception(ValueError("bad currency"))

        (record,) = json_stream()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "bad currency"
        assert "exc_code" not in record


class TestLogContext:

    def test_context_merged_into_records(self, json_stream):
        with LogContext.bind(claim_id="clm-1", actor_id="emp-1"):
            get_logger("services").info("claim_submitted")
        get_logger("services").info("after")

        inside, outside = json_stream()
        assert inside["claim_id"] == "clm-1"
        assert inside["actor_id"] == "emp-1"
        assert "claim_id" not in outside

    def test_no_context_fields_when_unbound(self, json_stream):
        get_logger("services").info("bare")

        (record,) = json_stream()
        assert "correlation_id" not in record
        assert "policy_id" not in record

    def test_set_ignores_none(self):
        LogContext.set(correlation_id="req-1")
        LogContext.set(policy_id="pol-1")

        assert LogContext.get_all() == {"correlation_id": "req-1", "policy_id": "pol-1"}

    def test_clear(self):
        LogContext.set(actor_id="a")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(claim_id="outer"):
            with LogContext.bind(claim_id="inner", policy_id="p"):
                assert LogContext.get_all() == {"claim_id": "inner", "policy_id": "p"}
            assert LogContext.get_all() == {"claim_id": "outer"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="a"):
                raise RuntimeError("boom")

        assert LogContext.get_all() == {}

    def test_bind_stringifies_and_filters(self):
        claim_id = uuid4()
        with LogContext.bind(claim_id=claim_id, trace_id="t", policy_id=None):
            assert LogContext.get_all() == {"claim_id": str(claim_id)}


class TestConfigureLogging:

    def test_second_call_is_noop(self):
        reset_logging()
        first = StringIO()
        configure_logging(stream=first)
        configure_logging(stream=StringIO(), level=logging.DEBUG)

        root = logging.getLogger("expense_kernel")
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_level_name_accepted(self):
        reset_logging()
        configure_logging(stream=StringIO(), level="WARNING")

        assert logging.getLogger("expense_kernel").level == logging.WARNING

    def test_tree_does_not_propagate(self):
        reset_logging()
        root = configure_logging(stream=StringIO())

        assert root.name == "expense_kernel"
        assert root.propagate is False

    def test_reset_removes_handlers(self):
        configure_logging(stream=StringIO())
        reset_logging()

        assert logging.getLogger("expense_kernel").handlers == []

    @pytest.fixture(autouse=True)
    def _restore(self):
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)
