"""ORM models. Importing this package registers every table on Base.metadata."""

from expense_kernel.models.approval import ExpenseApprovalModel
from expense_kernel.models.claim import ExpenseClaimModel
from expense_kernel.models.organization import CompanyModel, UserModel
from expense_kernel.models.policy import ApprovalPolicyModel, ApprovalPolicyStepModel

__all__ = [
    "ApprovalPolicyModel",
    "ApprovalPolicyStepModel",
    "CompanyModel",
    "ExpenseApprovalModel",
    "ExpenseClaimModel",
    "UserModel",
]
