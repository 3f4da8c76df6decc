"""
Structured JSON logging for the expense kernel.

Every record under the ``expense_kernel`` logger tree is written as one JSON
line: an envelope (ts, level, logger, message), the bound request context
(correlation, actor, claim, policy), any ``extra={...}`` fields, and, for
kernel exceptions, their ``code`` and public attributes prefixed ``exc_``.

Usage:
    logger = get_logger("services.claim_service")
    with LogContext.bind(claim_id=claim_id, actor_id=employee_id):
        logger.info("claim_submitted", extra={"step_order": 1})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from functools import singledispatch
from typing import Any, TextIO

# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

_CONTEXT: ContextVar[dict[str, str] | None] = ContextVar(
    "expense_log_context", default=None
)


class LogContext:
    """Request-scoped log fields, safe across threads and tasks.

    The whole context is one immutable snapshot; every change installs a new
    dict so a ``bind`` can be undone with its token.
    """

    FIELDS = ("correlation_id", "actor_id", "claim_id", "policy_id")

    @staticmethod
    def _current() -> dict[str, str]:
        return _CONTEXT.get() or {}

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        claim_id: str | None = None,
        policy_id: str | None = None,
    ) -> None:
        """Set context fields. None leaves a field untouched."""
        updates = {
            "correlation_id": correlation_id,
            "actor_id": actor_id,
            "claim_id": claim_id,
            "policy_id": policy_id,
        }
        _CONTEXT.set({
            **cls._current(),
            **{k: v for k, v in updates.items() if v is not None},
        })

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._current())

    @classmethod
    def clear(cls) -> None:
        _CONTEXT.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Overlay fields for the duration of a block.

        Values are stringified; unknown names and None values are ignored.
        """
        overlay = {
            name: str(value)
            for name, value in fields.items()
            if name in cls.FIELDS and value is not None
        }
        token = _CONTEXT.set({**cls._current(), **overlay})
        try:
            yield cls
        finally:
            _CONTEXT.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


@singledispatch
def _json_default(value: Any) -> Any:
    # UUID, Decimal and anything else without a JSON form
    return str(value)


@_json_default.register
def _(value: date) -> str:
    return value.isoformat()


@_json_default.register
def _(value: Enum) -> Any:
    return value.value


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        exc_info = record.exc_info
        if exc_info and exc_info[1] is not None:
            payload.update(_exception_fields(exc_info[1]))
            payload["traceback"] = self.formatException(exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Logger tree
# ---------------------------------------------------------------------------

_ROOT_NAME = "expense_kernel"

_install_lock = threading.Lock()
_installed: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Logger named ``expense_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """Install the JSON handler on the ``expense_kernel`` tree once.

    Later calls are no-ops until ``reset_logging()``.
    """
    global _installed
    root = logging.getLogger(_ROOT_NAME)
    with _install_lock:
        if _installed is not None:
            return root
        _installed = handler or logging.StreamHandler(stream or sys.stderr)
        _installed.setFormatter(StructuredFormatter())
        root.addHandler(_installed)
        root.setLevel(level)
        root.propagate = False
    return root


def reset_logging() -> None:
    """Drop every handler from the tree. Test helper."""
    global _installed
    root = logging.getLogger(_ROOT_NAME)
    with _install_lock:
        _installed = None
        root.handlers.clear()
        root.setLevel(logging.WARNING)
