"""
Pure domain layer.

Value objects and pure logic with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from expense_kernel.domain.claim import (
    CLAIM_TRANSITIONS,
    ApprovalRecord,
    ApprovalRecordStatus,
    ClaimDetails,
    ClaimRecord,
    ClaimStatus,
    ClaimSubmission,
    SubmissionResult,
    can_transition,
    normalize_draft,
    validate_submission,
)
from expense_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from expense_kernel.domain.routing import (
    ApproverDeterminationType,
    ApproverFound,
    ApproverNotFound,
    ApproverRule,
    DirectManagerRule,
    ManagerNUpRule,
    NotFoundReason,
    OrgHierarchyStore,
    PolicyStep,
    PolicyStore,
    RoutingResult,
    SpecificUserRule,
    UnrecognizedRule,
    parse_approver_rule,
)

__all__ = [
    "CLAIM_TRANSITIONS",
    "ApprovalRecord",
    "ApprovalRecordStatus",
    "ApproverDeterminationType",
    "ApproverFound",
    "ApproverNotFound",
    "ApproverRule",
    "ClaimDetails",
    "ClaimRecord",
    "ClaimStatus",
    "ClaimSubmission",
    "Clock",
    "DeterministicClock",
    "DirectManagerRule",
    "ManagerNUpRule",
    "NotFoundReason",
    "OrgHierarchyStore",
    "PolicyStep",
    "PolicyStore",
    "RoutingResult",
    "SpecificUserRule",
    "SubmissionResult",
    "SystemClock",
    "UnrecognizedRule",
    "can_transition",
    "normalize_draft",
    "parse_approver_rule",
    "validate_submission",
]
