"""
Pure calculation engines.

Engines read through domain protocols and return domain values.  They hold
no state, perform no writes and never touch the clock.
"""

from expense_engines.routing import (
    DEFAULT_MAX_HIERARCHY_DEPTH,
    resolve_next_approver,
    resolve_step_approver,
)

__all__ = [
    "DEFAULT_MAX_HIERARCHY_DEPTH",
    "resolve_next_approver",
    "resolve_step_approver",
]
