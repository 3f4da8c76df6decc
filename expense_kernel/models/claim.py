"""
Module: expense_kernel.models.claim
Responsibility: ORM persistence for expense claims.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/claim.py (for DTO conversion).

Invariants enforced:
    - status is one of Draft, Processing, Approved, Rejected (check
      constraint); transitions are enforced by ClaimService.
    - original_amount, when set, is positive.
    - A Processing claim always carries policy_id, current_approval_step
      and submitted_at (check constraint), since submission is atomic.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.claim import ClaimRecord, ClaimStatus


class ExpenseClaimModel(Base):
    """Persistent expense claim."""

    __tablename__ = "expense_claims"

    __table_args__ = (
        CheckConstraint(
            "status IN ('Draft', 'Processing', 'Approved', 'Rejected')",
            name="ck_expense_claims_valid_status",
        ),
        CheckConstraint(
            "original_amount IS NULL OR original_amount > 0",
            name="ck_expense_claims_positive_amount",
        ),
        CheckConstraint(
            "status = 'Draft' OR (policy_id IS NOT NULL "
            "AND current_approval_step IS NOT NULL AND submitted_at IS NOT NULL)",
            name="ck_expense_claims_submitted_routed",
        ),
        Index("ix_expense_claims_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=False,
    )
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    expense_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    original_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2), nullable=True,
    )
    original_currency_code: Mapped[str | None] = mapped_column(
        String(3), nullable=True,
    )
    receipt_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    policy_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("approval_policies.id"), nullable=True,
    )
    current_approval_step: Mapped[int | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ClaimStatus.DRAFT.value,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def to_dto(self) -> ClaimRecord:
        return ClaimRecord(
            claim_id=self.id,
            employee_id=self.user_id,
            company_id=self.company_id,
            status=ClaimStatus(self.status),
            description=self.description,
            expense_date=self.expense_date,
            category=self.category,
            original_amount=self.original_amount,
            original_currency_code=self.original_currency_code,
            receipt_url=self.receipt_url,
            policy_id=self.policy_id,
            current_approval_step=self.current_approval_step,
            submitted_at=self.submitted_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<ExpenseClaimModel {self.id} status={self.status}>"
