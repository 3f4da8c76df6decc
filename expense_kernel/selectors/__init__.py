"""Read-only selectors (SQL implementations of the routing stores and claim queries)."""

from expense_kernel.selectors.base import BaseSelector
from expense_kernel.selectors.claim_selector import ClaimSelector
from expense_kernel.selectors.hierarchy_selector import HierarchySelector
from expense_kernel.selectors.policy_selector import PolicySelector

__all__ = [
    "BaseSelector",
    "ClaimSelector",
    "HierarchySelector",
    "PolicySelector",
]
