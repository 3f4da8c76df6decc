"""
Module: expense_kernel.selectors.policy_selector
Responsibility: SQL-backed Policy Store.  Reads approval policy steps for
    the routing engine.
Architecture position: Kernel > Selectors.  Implements the ``PolicyStore``
    protocol from domain/routing.py.
"""

from uuid import UUID

from sqlalchemy import func, select

from expense_kernel.domain.routing import PolicyStep
from expense_kernel.models.policy import ApprovalPolicyStepModel
from expense_kernel.selectors.base import BaseSelector


class PolicySelector(BaseSelector[ApprovalPolicyStepModel]):
    """Read-only policy step queries."""

    store_name = "policy_store"

    def get_step(self, policy_id: UUID, sequence_order: int) -> PolicyStep | None:
        """Return the step at ``sequence_order`` of ``policy_id``, or None."""
        model = self._read(
            "get_step",
            lambda: self.session.execute(
                select(ApprovalPolicyStepModel).where(
                    ApprovalPolicyStepModel.policy_id == policy_id,
                    ApprovalPolicyStepModel.sequence_order == sequence_order,
                )
            ).scalar_one_or_none(),
        )
        return model.to_dto() if model is not None else None

    def get_first_step_order(self, policy_id: UUID) -> int | None:
        """Return the lowest sequence_order of ``policy_id``, or None if it has no steps."""
        return self._read(
            "get_first_step_order",
            lambda: self.session.execute(
                select(func.min(ApprovalPolicyStepModel.sequence_order)).where(
                    ApprovalPolicyStepModel.policy_id == policy_id,
                )
            ).scalar_one_or_none(),
        )

    def list_steps(self, policy_id: UUID) -> list[PolicyStep]:
        """All steps of ``policy_id`` in sequence order."""
        models = self._read(
            "list_steps",
            lambda: self.session.execute(
                select(ApprovalPolicyStepModel)
                .where(ApprovalPolicyStepModel.policy_id == policy_id)
                .order_by(ApprovalPolicyStepModel.sequence_order)
            ).scalars().all(),
        )
        return [m.to_dto() for m in models]
