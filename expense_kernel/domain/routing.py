"""
Approval routing domain types (``expense_kernel.domain.routing``).

Responsibility
--------------
Pure value objects for approver resolution: the closed union of
approver-determination rules, policy steps, routing results, and the
store protocols the routing engine reads through.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Rule variants form a closed union (``ApproverRule``).  Stored
  determination-type strings are parsed exactly once, in
  ``parse_approver_rule``; anything unrecognised becomes
  ``UnrecognizedRule`` instead of raising.
* ``ApproverNotFound`` is a value, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union
from uuid import UUID


class ApproverDeterminationType(str, Enum):
    """How a policy step picks its approver (stored string values)."""

    SPECIFIC_USER = "SpecificUser"
    DIRECT_MANAGER = "DirectManager"
    MANAGER_N_UP = "ManagerNUp"


# =========================================================================
# Rule variants
# =========================================================================


@dataclass(frozen=True)
class SpecificUserRule:
    """A named user approves. ``approver_user_id`` is None when misconfigured."""

    approver_user_id: UUID | None


@dataclass(frozen=True)
class DirectManagerRule:
    """The submitter's direct manager approves."""


@dataclass(frozen=True)
class ManagerNUpRule:
    """The manager ``levels`` hops up the submitter's reporting line approves."""

    levels: int | None


@dataclass(frozen=True)
class UnrecognizedRule:
    """A stored determination type this engine does not know."""

    raw_type: str | None


ApproverRule = Union[SpecificUserRule, DirectManagerRule, ManagerNUpRule, UnrecognizedRule]


def parse_approver_rule(
    determination_type: str | None,
    approver_user_id: UUID | None = None,
    manager_level_offset: int | None = None,
) -> ApproverRule:
    """Build the rule variant for a stored policy step row.

    Only the column relevant to the type is carried over; the others are
    ignored even if populated.
    """
    try:
        kind = ApproverDeterminationType(determination_type)
    except ValueError:
        return UnrecognizedRule(raw_type=determination_type)

    if kind is ApproverDeterminationType.SPECIFIC_USER:
        return SpecificUserRule(approver_user_id=approver_user_id)
    if kind is ApproverDeterminationType.DIRECT_MANAGER:
        return DirectManagerRule()
    return ManagerNUpRule(levels=manager_level_offset)


@dataclass(frozen=True)
class PolicyStep:
    """One step of an approval policy."""

    policy_id: UUID
    sequence_order: int
    rule: ApproverRule


# =========================================================================
# Routing results
# =========================================================================


class NotFoundReason(str, Enum):
    """Why no approver could be resolved."""

    NO_POLICY = "no_policy"
    NO_STEP = "no_step"
    NO_MANAGER = "no_manager"
    CHAIN_TOO_SHORT = "chain_too_short"
    CYCLE_DETECTED = "cycle_detected"
    DEPTH_EXCEEDED = "depth_exceeded"
    MISCONFIGURED_STEP = "misconfigured_step"
    UNRECOGNIZED_RULE = "unrecognized_rule"


@dataclass(frozen=True)
class ApproverFound:
    """The step resolved to a concrete approver."""

    approver_id: UUID
    step: PolicyStep

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class ApproverNotFound:
    """No approver for this step. A normal, terminal outcome."""

    reason: NotFoundReason
    detail: str = ""

    @property
    def found(self) -> bool:
        return False


RoutingResult = Union[ApproverFound, ApproverNotFound]


# =========================================================================
# Store protocols
# =========================================================================


class PolicyStore(Protocol):
    """Read-only access to approval policy steps."""

    def get_step(self, policy_id: UUID, sequence_order: int) -> PolicyStep | None:
        """Return the step at ``sequence_order`` or None."""
        ...

    def get_first_step_order(self, policy_id: UUID) -> int | None:
        """Return the lowest sequence_order of the policy, or None if it has no steps."""
        ...


class OrgHierarchyStore(Protocol):
    """Read-only access to the reporting line."""

    def get_manager_of(self, user_id: UUID) -> UUID | None:
        """Return the user's direct manager, or None for roots/unknown users."""
        ...
