"""
Typed Exception Hierarchy for the Expense Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to tell a bad submission from a misconfigured policy
from a database outage without parsing message strings:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        service.submit_claim(claim_id, employee_id)
    except ClaimValidationError as e:
        api_response(400, code=e.code, fields=e.field_errors)
    except RoutingNotFoundError as e:
        api_response(400, code=e.code, reason=e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ExpenseKernelError:

    ExpenseKernelError (base)
    |
    +-- ClaimError
    |   +-- ClaimValidationError
    |   +-- ClaimNotFoundError
    |   +-- InvalidClaimTransitionError
    |
    +-- RoutingError
    |   +-- RoutingNotFoundError
    |
    +-- ApprovalRecordError
    |   +-- DuplicateApprovalRecordError
    |
    +-- StoreError
        +-- StoreUnavailableError
        +-- LookupTimeoutError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Claim           | CLAIM_VALIDATION_FAILED     | Missing/malformed submission fields
                | CLAIM_NOT_FOUND             | No such claim for this employee
                | INVALID_CLAIM_TRANSITION    | e.g. submitting a non-Draft claim
----------------|-----------------------------|-----------------------------------------
Routing         | ROUTING_NOT_FOUND           | No approver for the current step
----------------|-----------------------------|-----------------------------------------
Approval record | DUPLICATE_APPROVAL_RECORD   | Pending record exists for claim/step
----------------|-----------------------------|-----------------------------------------
Store           | STORE_UNAVAILABLE           | Policy/hierarchy read failed
                | LOOKUP_TIMEOUT              | Lookup budget exhausted

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and routing failures are user-correctable:
   ClaimValidationError -> "fix the form", RoutingNotFoundError -> "fix the
   policy or manager assignment".

2. StoreError is a server-side failure. Reads are retried inside
   GuardedLookups; by the time a StoreError reaches the caller the retry
   budget is spent.

3. DuplicateApprovalRecordError on a retried submission means an earlier
   attempt already routed the claim.

===============================================================================
"""


class ExpenseKernelError(Exception):
    """
    Base exception for all expense kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "EXPENSE_KERNEL_ERROR"


# Claim-related exceptions


class ClaimError(ExpenseKernelError):
    """Base exception for claim lifecycle errors."""

    code: str = "CLAIM_ERROR"


class ClaimValidationError(ClaimError):
    """
    Claim submission fields are missing or malformed.

    Raised before any state change; the caller can resubmit corrected data.
    """

    code: str = "CLAIM_VALIDATION_FAILED"

    def __init__(self, field_errors: list[dict[str, str]]):
        self.field_errors = field_errors
        summary = "; ".join(e["message"] for e in field_errors)
        super().__init__(f"Claim validation failed: {summary}")


class ClaimNotFoundError(ClaimError):
    """Claim does not exist or is not owned by the requesting employee."""

    code: str = "CLAIM_NOT_FOUND"

    def __init__(self, claim_id: str, employee_id: str | None = None):
        self.claim_id = claim_id
        self.employee_id = employee_id
        super().__init__(f"Claim not found: {claim_id}")


class InvalidClaimTransitionError(ClaimError):
    """Requested status change is not allowed from the claim's current status."""

    code: str = "INVALID_CLAIM_TRANSITION"

    def __init__(self, claim_id: str, from_status: str, to_status: str):
        self.claim_id = claim_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Claim {claim_id} cannot move from {from_status} to {to_status}"
        )


# Routing exceptions


class RoutingError(ExpenseKernelError):
    """Base exception for approval routing errors."""

    code: str = "ROUTING_ERROR"


class RoutingNotFoundError(RoutingError):
    """
    No approver could be determined for the claim's current step.

    The engine reports this as a value; the lifecycle manager raises it so
    the submission is blocked and nothing is persisted.
    """

    code: str = "ROUTING_NOT_FOUND"

    def __init__(
        self,
        claim_id: str | None,
        policy_id: str | None,
        step_order: int | None,
        reason: str,
        detail: str = "",
    ):
        self.claim_id = claim_id
        self.policy_id = policy_id
        self.step_order = step_order
        self.reason = reason
        self.detail = detail
        super().__init__(
            f"Could not determine an approver for policy {policy_id} "
            f"step {step_order}: {reason}"
            + (f" ({detail})" if detail else "")
        )


# Approval record exceptions


class ApprovalRecordError(ExpenseKernelError):
    """Base exception for approval record errors."""

    code: str = "APPROVAL_RECORD_ERROR"


class DuplicateApprovalRecordError(ApprovalRecordError):
    """A pending approval record already exists for this claim and step."""

    code: str = "DUPLICATE_APPROVAL_RECORD"

    def __init__(self, claim_id: str, step_order: int):
        self.claim_id = claim_id
        self.step_order = step_order
        super().__init__(
            f"Approval record already exists for claim {claim_id} step {step_order}"
        )


# Store exceptions


class StoreError(ExpenseKernelError):
    """Base exception for policy/hierarchy store failures."""

    code: str = "STORE_ERROR"


class StoreUnavailableError(StoreError):
    """A read against the policy or hierarchy store failed."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, store: str, operation: str, reason: str):
        self.store = store
        self.operation = operation
        self.reason = reason
        super().__init__(f"{store}.{operation} failed: {reason}")


class LookupTimeoutError(StoreError):
    """The lookup budget for a single resolution was exhausted."""

    code: str = "LOOKUP_TIMEOUT"

    def __init__(self, operation: str, budget_seconds: float, elapsed_seconds: float):
        self.operation = operation
        self.budget_seconds = budget_seconds
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"Lookup budget of {budget_seconds}s exhausted before {operation} "
            f"(elapsed {elapsed_seconds:.3f}s)"
        )
