"""
Module: expense_kernel.models.approval
Responsibility: ORM persistence for per-step approval records on claims.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/claim.py (for DTO conversion).

Invariants enforced:
    - UNIQUE(claim_id, step_order): at most one record per claim step, so a
      retried submission cannot create a second pending approval.
    - approval_status is one of Pending, Approved, Rejected.

Failure modes:
    - IntegrityError on a duplicate (claim_id, step_order) insert.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.claim import ApprovalRecord, ApprovalRecordStatus


class ExpenseApprovalModel(Base):
    """One approver's record for one step of a claim."""

    __tablename__ = "expense_approvals"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('Pending', 'Approved', 'Rejected')",
            name="ck_expense_approvals_valid_status",
        ),
        UniqueConstraint(
            "claim_id", "step_order",
            name="uq_expense_approvals_claim_step",
        ),
        Index(
            "ix_expense_approvals_approver_status",
            "approver_user_id", "approval_status",
        ),
    )

    claim_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("expense_claims.id"), nullable=False,
    )
    approver_user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    step_order: Mapped[int] = mapped_column(nullable=False)
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalRecordStatus.PENDING.value,
    )
    action_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    comment: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def to_dto(self) -> ApprovalRecord:
        return ApprovalRecord(
            approval_id=self.id,
            claim_id=self.claim_id,
            approver_user_id=self.approver_user_id,
            step_order=self.step_order,
            approval_status=ApprovalRecordStatus(self.approval_status),
            action_date=self.action_date,
            comment=self.comment,
        )

    def __repr__(self) -> str:
        return (
            f"<ExpenseApprovalModel claim={self.claim_id} step={self.step_order} "
            f"approver={self.approver_user_id} {self.approval_status}>"
        )
