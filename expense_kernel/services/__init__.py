"""Services for the expense kernel (write side)."""

from expense_kernel.services.claim_service import ClaimService
from expense_kernel.services.lookup_guard import GuardedLookups, RoutingLimits

__all__ = [
    "ClaimService",
    "GuardedLookups",
    "RoutingLimits",
]
