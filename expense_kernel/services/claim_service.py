"""
expense_kernel.services.claim_service -- Claim lifecycle management.

Responsibility:
    Owns claim status transitions (drafting, editing, submission) and asks
    the routing engine for the first approver on submission, persisting one
    pending approval record per routed claim.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/ and the
    pure routing engine.

Invariants enforced:
    - Draft is the only status that may be edited or submitted.
    - Submission fields are validated before anything is written.
    - Routing runs before any mutation.  A submission that cannot be routed
      writes nothing: a draft stays Draft, a direct submission creates no
      claim.  Status change and approval record are flushed together in the
      caller's transaction.
    - One approval record per (claim, step): checked here, backed by the
      UNIQUE(claim_id, step_order) constraint.

Failure modes:
    - ClaimValidationError on missing/malformed fields.
    - ClaimNotFoundError if the claim does not exist or is not the employee's.
    - InvalidClaimTransitionError when the claim is not a Draft.
    - RoutingNotFoundError when no approver can be resolved.
    - DuplicateApprovalRecordError when the step already has a record.
    - StoreUnavailableError / LookupTimeoutError from policy/hierarchy reads.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_engines.routing import resolve_next_approver
from expense_kernel.domain.claim import (
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
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.domain.routing import (
    ApproverFound,
    ApproverNotFound,
    NotFoundReason,
    OrgHierarchyStore,
    PolicyStore,
    RoutingResult,
)
from expense_kernel.exceptions import (
    ClaimNotFoundError,
    ClaimValidationError,
    DuplicateApprovalRecordError,
    InvalidClaimTransitionError,
    RoutingNotFoundError,
)
from expense_kernel.logging_config import LogContext, get_logger
from expense_kernel.models.approval import ExpenseApprovalModel
from expense_kernel.models.claim import ExpenseClaimModel
from expense_kernel.selectors.claim_selector import ClaimSelector
from expense_kernel.selectors.hierarchy_selector import HierarchySelector
from expense_kernel.selectors.policy_selector import PolicySelector
from expense_kernel.services.lookup_guard import GuardedLookups, RoutingLimits

logger = get_logger("services.claim_service")


class ClaimService:
    """Manages the claim lifecycle up to the first pending approval."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        limits: RoutingLimits | None = None,
        policy_store: PolicyStore | None = None,
        hierarchy_store: OrgHierarchyStore | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._claims = ClaimSelector(session)
        self._lookups = GuardedLookups(
            policy_store or PolicySelector(session),
            hierarchy_store or HierarchySelector(session),
            limits or RoutingLimits(),
            self._clock,
        )

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def create_draft(
        self,
        employee_id: UUID,
        company_id: UUID,
        details: ClaimDetails | None = None,
    ) -> ClaimRecord:
        """Create a Draft claim. Any field may be missing; present ones must be well-formed."""
        values = normalize_draft(details or ClaimDetails())
        now = self._clock.now()

        model = ExpenseClaimModel(
            id=uuid4(),
            user_id=employee_id,
            company_id=company_id,
            status=ClaimStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
            **values,
        )
        self._session.add(model)
        self._session.flush()

        logger.info(
            "claim_draft_created",
            extra={
                "claim_id": str(model.id),
                "employee_id": str(employee_id),
                "fields": sorted(values),
            },
        )
        return model.to_dto()

    def update_draft(
        self,
        claim_id: UUID,
        employee_id: UUID,
        changes: dict[str, Any],
    ) -> ClaimRecord:
        """Apply ``changes`` to a Draft claim.

        Keys present with a None value clear the field.
        """
        if not changes:
            raise ClaimValidationError([
                {"field": "*", "message": "No changes were provided"},
            ])
        values = normalize_draft(ClaimDetails.from_dict(changes))

        model = self._load_claim_model(claim_id, employee_id)
        if model.status != ClaimStatus.DRAFT.value:
            raise InvalidClaimTransitionError(
                str(claim_id), model.status, ClaimStatus.DRAFT.value,
            )

        for field_name in changes:
            setattr(model, field_name, values.get(field_name))
        model.updated_at = self._clock.now()
        self._session.flush()

        logger.info(
            "claim_draft_updated",
            extra={"claim_id": str(claim_id), "fields": sorted(changes)},
        )
        return model.to_dto()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_claim(
        self,
        claim_ref: UUID | ClaimDetails,
        employee_id: UUID,
        company_id: UUID | None = None,
        details: ClaimDetails | None = None,
    ) -> SubmissionResult:
        """Submit an existing draft (``claim_ref`` is its id) or create and
        submit in one step (``claim_ref`` is the claim data).
        """
        if isinstance(claim_ref, ClaimDetails):
            if company_id is None:
                raise ValueError("company_id is required to create and submit a claim")
            return self.create_and_submit(employee_id, company_id, claim_ref)
        return self.submit_draft(claim_ref, employee_id, details)

    def submit_draft(
        self,
        claim_id: UUID,
        employee_id: UUID,
        details: ClaimDetails | None = None,
    ) -> SubmissionResult:
        """Submit a Draft claim, optionally replacing its details.

        Without ``details`` the draft's stored fields are submitted as-is.
        """
        with LogContext.bind(claim_id=str(claim_id), actor_id=str(employee_id)):
            submission = validate_submission(details) if details is not None else None

            model = self._load_claim_model(claim_id, employee_id)
            current = ClaimStatus(model.status)
            if not (current == ClaimStatus.DRAFT
                    and can_transition(current, ClaimStatus.PROCESSING)):
                raise InvalidClaimTransitionError(
                    str(claim_id), current.value, ClaimStatus.PROCESSING.value,
                )

            if submission is None:
                submission = validate_submission(_details_from_model(model))

            found = self._route(claim_id, submission.policy_id, employee_id)
            step_order = found.step.sequence_order
            self._guard_duplicate(claim_id, step_order)

            now = self._clock.now()
            _apply_submission(model, submission)
            model.status = ClaimStatus.PROCESSING.value
            model.current_approval_step = step_order
            model.submitted_at = now
            model.updated_at = now

            approval = self._add_pending_approval(claim_id, found.approver_id, step_order)
            self._session.flush()

            return self._submitted(model, approval)

    def create_and_submit(
        self,
        employee_id: UUID,
        company_id: UUID,
        details: ClaimDetails,
    ) -> SubmissionResult:
        """Create a claim directly in Processing and route it."""
        with LogContext.bind(actor_id=str(employee_id)):
            submission = validate_submission(details)

            claim_id = uuid4()
            found = self._route(None, submission.policy_id, employee_id)
            step_order = found.step.sequence_order

            now = self._clock.now()
            model = ExpenseClaimModel(
                id=claim_id,
                user_id=employee_id,
                company_id=company_id,
                status=ClaimStatus.PROCESSING.value,
                current_approval_step=step_order,
                submitted_at=now,
                created_at=now,
                updated_at=now,
            )
            _apply_submission(model, submission)
            self._session.add(model)
            # Parent row first; approval records reference expense_claims.id.
            self._session.flush()

            approval = self._add_pending_approval(claim_id, found.approver_id, step_order)
            self._session.flush()

            return self._submitted(model, approval)

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def resolve_approver(
        self,
        policy_id: UUID | None,
        step_order: int,
        employee_id: UUID,
    ) -> RoutingResult:
        """Resolve the approver for an explicit step with retry and budget applied."""
        self._lookups.start()
        return resolve_next_approver(
            self._lookups,
            self._lookups,
            policy_id,
            step_order,
            employee_id,
            max_hierarchy_depth=self._lookups.limits.max_hierarchy_depth,
        )

    def _route(
        self,
        claim_id: UUID | None,
        policy_id: UUID,
        employee_id: UUID,
    ) -> ApproverFound:
        """Resolve the first step of ``policy_id`` or raise RoutingNotFoundError."""
        self._lookups.start()
        step_order = self._lookups.get_first_step_order(policy_id)

        if step_order is None:
            result: RoutingResult = ApproverNotFound(
                NotFoundReason.NO_STEP, f"policy {policy_id} has no steps",
            )
        else:
            result = resolve_next_approver(
                self._lookups,
                self._lookups,
                policy_id,
                step_order,
                employee_id,
                max_hierarchy_depth=self._lookups.limits.max_hierarchy_depth,
            )

        if isinstance(result, ApproverNotFound):
            logger.warning(
                "approver_not_found",
                extra={
                    "policy_id": str(policy_id),
                    "step_order": step_order,
                    "employee_id": str(employee_id),
                    "reason": result.reason.value,
                    "detail": result.detail,
                },
            )
            raise RoutingNotFoundError(
                str(claim_id) if claim_id is not None else None,
                str(policy_id),
                step_order,
                result.reason.value,
                result.detail,
            )

        logger.info(
            "approver_resolved",
            extra={
                "policy_id": str(policy_id),
                "step_order": step_order,
                "approver_id": str(result.approver_id),
                "lookups": self._lookups.lookup_count,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_claim(self, claim_id: UUID, employee_id: UUID) -> ClaimRecord:
        record = self._claims.get_for_employee(claim_id, employee_id)
        if record is None:
            raise ClaimNotFoundError(str(claim_id), str(employee_id))
        return record

    def list_claims(self, employee_id: UUID) -> list[ClaimRecord]:
        """All of the employee's claims (any status), newest first."""
        return self._claims.list_for_employee(employee_id)

    def get_pending_approvals(self, claim_id: UUID) -> list[ApprovalRecord]:
        return self._claims.approvals_for_claim(claim_id, ApprovalRecordStatus.PENDING)

    def get_approval_queue(self, approver_user_id: UUID) -> list[ApprovalRecord]:
        """Pending approvals waiting on ``approver_user_id``."""
        return self._claims.pending_for_approver(approver_user_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_claim_model(self, claim_id: UUID, employee_id: UUID) -> ExpenseClaimModel:
        model = self._session.execute(
            select(ExpenseClaimModel).where(
                ExpenseClaimModel.id == claim_id,
                ExpenseClaimModel.user_id == employee_id,
            )
        ).scalar_one_or_none()

        if model is None:
            raise ClaimNotFoundError(str(claim_id), str(employee_id))

        return model

    def _guard_duplicate(self, claim_id: UUID, step_order: int) -> None:
        existing = self._session.execute(
            select(ExpenseApprovalModel.id).where(
                ExpenseApprovalModel.claim_id == claim_id,
                ExpenseApprovalModel.step_order == step_order,
            )
        ).scalar_one_or_none()

        if existing is not None:
            raise DuplicateApprovalRecordError(str(claim_id), step_order)

    def _add_pending_approval(
        self,
        claim_id: UUID,
        approver_id: UUID,
        step_order: int,
    ) -> ExpenseApprovalModel:
        approval = ExpenseApprovalModel(
            id=uuid4(),
            claim_id=claim_id,
            approver_user_id=approver_id,
            step_order=step_order,
            approval_status=ApprovalRecordStatus.PENDING.value,
            action_date=self._clock.now(),
        )
        self._session.add(approval)
        return approval

    def _submitted(
        self,
        model: ExpenseClaimModel,
        approval: ExpenseApprovalModel,
    ) -> SubmissionResult:
        logger.info(
            "claim_submitted",
            extra={
                "claim_id": str(model.id),
                "approver_id": str(approval.approver_user_id),
                "step_order": approval.step_order,
                "amount": model.original_amount,
                "currency": model.original_currency_code,
            },
        )
        return SubmissionResult(
            claim_id=model.id,
            status=ClaimStatus(model.status),
            approver_id=approval.approver_user_id,
            approval_id=approval.id,
            step_order=approval.step_order,
        )


def _details_from_model(model: ExpenseClaimModel) -> ClaimDetails:
    return ClaimDetails(
        description=model.description,
        expense_date=model.expense_date,
        category=model.category,
        original_amount=model.original_amount,
        original_currency_code=model.original_currency_code,
        receipt_url=model.receipt_url,
        policy_id=model.policy_id,
    )


def _apply_submission(model: ExpenseClaimModel, submission: ClaimSubmission) -> None:
    model.description = submission.description
    model.expense_date = submission.expense_date
    model.category = submission.category
    model.original_amount = submission.original_amount
    model.original_currency_code = submission.original_currency_code
    model.receipt_url = submission.receipt_url
    model.policy_id = submission.policy_id
