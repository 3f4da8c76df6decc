"""
Module: expense_kernel.selectors.claim_selector
Responsibility: Read-only claim and approval-record queries for employees
    and the claim service.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from expense_kernel.domain.claim import ApprovalRecord, ApprovalRecordStatus, ClaimRecord
from expense_kernel.models.approval import ExpenseApprovalModel
from expense_kernel.models.claim import ExpenseClaimModel
from expense_kernel.selectors.base import BaseSelector


class ClaimSelector(BaseSelector[ExpenseClaimModel]):
    """Claim queries scoped to the owning employee."""

    store_name = "claim_store"

    def get_for_employee(self, claim_id: UUID, employee_id: UUID) -> ClaimRecord | None:
        """The claim if it exists and belongs to ``employee_id``."""
        model = self._read(
            "get_for_employee",
            lambda: self.session.execute(
                select(ExpenseClaimModel).where(
                    ExpenseClaimModel.id == claim_id,
                    ExpenseClaimModel.user_id == employee_id,
                )
            ).scalar_one_or_none(),
        )
        return model.to_dto() if model is not None else None

    def list_for_employee(self, employee_id: UUID) -> list[ClaimRecord]:
        """All of the employee's claims, newest first."""
        models = self._read(
            "list_for_employee",
            lambda: self.session.execute(
                select(ExpenseClaimModel)
                .where(ExpenseClaimModel.user_id == employee_id)
                .order_by(ExpenseClaimModel.created_at.desc())
            ).scalars().all(),
        )
        return [m.to_dto() for m in models]

    def approvals_for_claim(
        self,
        claim_id: UUID,
        status: ApprovalRecordStatus | None = None,
    ) -> list[ApprovalRecord]:
        """Approval records of a claim in step order, optionally filtered by status."""
        stmt = select(ExpenseApprovalModel).where(
            ExpenseApprovalModel.claim_id == claim_id,
        )
        if status is not None:
            stmt = stmt.where(ExpenseApprovalModel.approval_status == status.value)
        models = self._read(
            "approvals_for_claim",
            lambda: self.session.execute(
                stmt.order_by(ExpenseApprovalModel.step_order)
            ).scalars().all(),
        )
        return [m.to_dto() for m in models]

    def pending_for_approver(self, approver_user_id: UUID) -> list[ApprovalRecord]:
        """Pending approval records assigned to ``approver_user_id``, oldest first."""
        models = self._read(
            "pending_for_approver",
            lambda: self.session.execute(
                select(ExpenseApprovalModel)
                .where(
                    ExpenseApprovalModel.approver_user_id == approver_user_id,
                    ExpenseApprovalModel.approval_status
                    == ApprovalRecordStatus.PENDING.value,
                )
                .order_by(ExpenseApprovalModel.action_date)
            ).scalars().all(),
        )
        return [m.to_dto() for m in models]
