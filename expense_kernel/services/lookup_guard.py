"""
expense_kernel.services.lookup_guard -- Bounded, retrying store lookups.

Responsibility:
    Wraps a ``PolicyStore`` and an ``OrgHierarchyStore`` so that every
    lookup made during one approver resolution is (a) retried on transient
    store failures and (b) charged against a single time budget.  The
    routing engine sees the wrapper as an ordinary pair of stores.

Architecture position:
    Kernel > Services -- imperative shell around the pure routing engine.

Invariants enforced:
    - Only reads are retried; the wrapper never writes.
    - At most ``read_retry_attempts`` tries per lookup.
    - The budget is checked before every attempt against the injected
      Clock; once spent, ``LookupTimeoutError`` is raised.

Failure modes:
    - StoreUnavailableError after the last failed attempt.
    - LookupTimeoutError when the budget is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, TypeVar
from uuid import UUID

from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.routing import OrgHierarchyStore, PolicyStep, PolicyStore
from expense_kernel.exceptions import LookupTimeoutError, StoreUnavailableError
from expense_kernel.logging_config import get_logger

logger = get_logger("services.lookup_guard")

T = TypeVar("T")


@dataclass(frozen=True)
class RoutingLimits:
    """Bounds applied to every approver resolution."""

    max_hierarchy_depth: int = 32
    lookup_timeout_seconds: float = 5.0
    read_retry_attempts: int = 3

    def __post_init__(self) -> None:
        if self.max_hierarchy_depth < 1:
            raise ValueError("max_hierarchy_depth must be at least 1")
        if self.lookup_timeout_seconds <= 0:
            raise ValueError("lookup_timeout_seconds must be positive")
        if self.read_retry_attempts < 1:
            raise ValueError("read_retry_attempts must be at least 1")


class GuardedLookups:
    """Policy and hierarchy store facade with retry and a shared time budget.

    Call ``start()`` before each resolution to reset the budget.
    """

    def __init__(
        self,
        policy_store: PolicyStore,
        hierarchy_store: OrgHierarchyStore,
        limits: RoutingLimits | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._policy_store = policy_store
        self._hierarchy_store = hierarchy_store
        self._limits = limits or RoutingLimits()
        self._clock = clock or SystemClock()
        self._started_at: datetime | None = None
        self.lookup_count = 0

    @property
    def limits(self) -> RoutingLimits:
        return self._limits

    def start(self) -> GuardedLookups:
        """Reset the budget and lookup counter."""
        self._started_at = self._clock.now()
        self.lookup_count = 0
        return self

    # PolicyStore

    def get_step(self, policy_id: UUID, sequence_order: int) -> PolicyStep | None:
        return self._call(
            "get_step",
            lambda: self._policy_store.get_step(policy_id, sequence_order),
        )

    def get_first_step_order(self, policy_id: UUID) -> int | None:
        return self._call(
            "get_first_step_order",
            lambda: self._policy_store.get_first_step_order(policy_id),
        )

    # OrgHierarchyStore

    def get_manager_of(self, user_id: UUID) -> UUID | None:
        return self._call(
            "get_manager_of",
            lambda: self._hierarchy_store.get_manager_of(user_id),
        )

    def _call(self, operation: str, lookup: Callable[[], T]) -> T:
        if self._started_at is None:
            self.start()

        attempts = self._limits.read_retry_attempts
        for attempt in range(1, attempts + 1):
            self._check_budget(operation)
            self.lookup_count += 1
            try:
                return lookup()
            except StoreUnavailableError as exc:
                if attempt == attempts:
                    logger.error(
                        "store_lookup_failed",
                        extra={
                            "operation": operation,
                            "attempts": attempts,
                            "reason": exc.reason,
                        },
                    )
                    raise
                logger.warning(
                    "store_lookup_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "reason": exc.reason,
                    },
                )
        raise AssertionError("unreachable")

    def _check_budget(self, operation: str) -> None:
        elapsed = (self._clock.now() - self._started_at).total_seconds()
        budget = self._limits.lookup_timeout_seconds
        if elapsed >= budget:
            logger.warning(
                "lookup_budget_exhausted",
                extra={
                    "operation": operation,
                    "budget_seconds": budget,
                    "elapsed_seconds": elapsed,
                },
            )
            raise LookupTimeoutError(operation, budget, elapsed)
