"""
Module: expense_kernel.models.policy
Responsibility: ORM persistence for approval policies and their ordered steps.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/routing.py (for DTO conversion).

Invariants enforced:
    - UNIQUE(policy_id, sequence_order): one rule per step.
    - manager_level_offset, when set, is positive.
    - approver_determination_type is stored verbatim.  Unknown values are
      allowed at the storage level and resolve to "no approver".
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_kernel.db.base import Base, UUIDString
from expense_kernel.domain.routing import PolicyStep, parse_approver_rule


class ApprovalPolicyModel(Base):
    """A company's named approval policy."""

    __tablename__ = "approval_policies"

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    steps: Mapped[list["ApprovalPolicyStepModel"]] = relationship(
        "ApprovalPolicyStepModel",
        back_populates="policy",
        order_by="ApprovalPolicyStepModel.sequence_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ApprovalPolicyModel {self.id} {self.name!r}>"


class ApprovalPolicyStepModel(Base):
    """One step of an approval policy."""

    __tablename__ = "approval_policy_steps"

    __table_args__ = (
        UniqueConstraint(
            "policy_id", "sequence_order",
            name="uq_policy_steps_policy_sequence",
        ),
        CheckConstraint(
            "manager_level_offset IS NULL OR manager_level_offset > 0",
            name="ck_policy_steps_positive_offset",
        ),
    )

    policy_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_policies.id"), nullable=False,
    )
    sequence_order: Mapped[int] = mapped_column(nullable=False)
    approver_determination_type: Mapped[str] = mapped_column(
        String(50), nullable=False,
    )
    approver_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )
    manager_level_offset: Mapped[int | None] = mapped_column(nullable=True)

    policy: Mapped[ApprovalPolicyModel] = relationship(
        ApprovalPolicyModel, back_populates="steps",
    )

    def to_dto(self) -> PolicyStep:
        """Convert to the domain PolicyStep."""
        return PolicyStep(
            policy_id=self.policy_id,
            sequence_order=self.sequence_order,
            rule=parse_approver_rule(
                self.approver_determination_type,
                self.approver_user_id,
                self.manager_level_offset,
            ),
        )

    def __repr__(self) -> str:
        return (
            f"<ApprovalPolicyStepModel policy={self.policy_id} "
            f"order={self.sequence_order} type={self.approver_determination_type}>"
        )
