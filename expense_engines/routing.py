"""
expense_engines.routing -- Pure approver resolution engine.

Responsibility:
    Given a claim's policy, its current step and the submitting employee,
    determine which user must approve that step, or report that none
    exists.

Architecture position:
    Engines -- pure calculation layer.  Reads only through the
    ``PolicyStore`` / ``OrgHierarchyStore`` protocols; never writes.
    May only import expense_kernel/domain/ types.

Invariants enforced:
    - No policy -> ``NO_POLICY`` without touching the policy store.
    - Query count: one step lookup, then 0 (SpecificUser), 1 (DirectManager)
      or N (ManagerNUp) hierarchy lookups.
    - ManagerNUp must reach exactly N hops; no partial credit.
    - Bounded walk: offsets above ``max_hierarchy_depth`` are refused and a
      revisited user ends the walk with ``CYCLE_DETECTED``.
    - Deterministic and idempotent for unchanged store data.

Failure modes:
    - Every "no approver" outcome is an ``ApproverNotFound`` value.
    - Store exceptions (``StoreError``) propagate unchanged.
"""

from __future__ import annotations

from typing import assert_never
from uuid import UUID

from expense_kernel.domain.routing import (
    ApproverFound,
    ApproverNotFound,
    DirectManagerRule,
    ManagerNUpRule,
    NotFoundReason,
    OrgHierarchyStore,
    PolicyStep,
    PolicyStore,
    RoutingResult,
    SpecificUserRule,
    UnrecognizedRule,
)

DEFAULT_MAX_HIERARCHY_DEPTH = 32


def resolve_next_approver(
    policy_store: PolicyStore,
    hierarchy_store: OrgHierarchyStore,
    policy_id: UUID | None,
    current_step_order: int,
    employee_id: UUID,
    *,
    max_hierarchy_depth: int = DEFAULT_MAX_HIERARCHY_DEPTH,
) -> RoutingResult:
    """Resolve the approver for ``current_step_order`` of ``policy_id``.

    Args:
        policy_store: Source of policy steps.
        hierarchy_store: Source of direct-manager links.
        policy_id: The claim's policy (None = no policy assigned).
        current_step_order: The step to resolve.
        employee_id: The submitting employee.
        max_hierarchy_depth: Ceiling on hops walked for ManagerNUp.

    Returns:
        ``ApproverFound`` with the approver id, or ``ApproverNotFound``
        with the reason.
    """
    if policy_id is None:
        return ApproverNotFound(NotFoundReason.NO_POLICY)

    step = policy_store.get_step(policy_id, current_step_order)
    if step is None:
        return ApproverNotFound(
            NotFoundReason.NO_STEP,
            f"policy {policy_id} has no step {current_step_order}",
        )

    return resolve_step_approver(
        step, hierarchy_store, employee_id,
        max_hierarchy_depth=max_hierarchy_depth,
    )


def resolve_step_approver(
    step: PolicyStep,
    hierarchy_store: OrgHierarchyStore,
    employee_id: UUID,
    *,
    max_hierarchy_depth: int = DEFAULT_MAX_HIERARCHY_DEPTH,
) -> RoutingResult:
    """Dispatch on the step's rule variant."""
    rule = step.rule

    if isinstance(rule, SpecificUserRule):
        if rule.approver_user_id is None:
            return ApproverNotFound(
                NotFoundReason.MISCONFIGURED_STEP,
                "SpecificUser step has no approver_user_id",
            )
        return ApproverFound(rule.approver_user_id, step)

    if isinstance(rule, DirectManagerRule):
        manager_id = hierarchy_store.get_manager_of(employee_id)
        if manager_id is None:
            return ApproverNotFound(
                NotFoundReason.NO_MANAGER,
                f"user {employee_id} has no manager",
            )
        return ApproverFound(manager_id, step)

    if isinstance(rule, ManagerNUpRule):
        return _walk_manager_chain(
            step, rule.levels, hierarchy_store, employee_id, max_hierarchy_depth,
        )

    if isinstance(rule, UnrecognizedRule):
        return ApproverNotFound(
            NotFoundReason.UNRECOGNIZED_RULE,
            f"unknown approver_determination_type {rule.raw_type!r}",
        )

    assert_never(rule)


def _walk_manager_chain(
    step: PolicyStep,
    levels: int | None,
    hierarchy_store: OrgHierarchyStore,
    employee_id: UUID,
    max_hierarchy_depth: int,
) -> RoutingResult:
    """Walk exactly ``levels`` hops up from ``employee_id``."""
    if levels is None or levels < 1:
        return ApproverNotFound(
            NotFoundReason.MISCONFIGURED_STEP,
            f"ManagerNUp step needs a positive manager_level_offset, got {levels!r}",
        )
    if levels > max_hierarchy_depth:
        return ApproverNotFound(
            NotFoundReason.DEPTH_EXCEEDED,
            f"offset {levels} exceeds max hierarchy depth {max_hierarchy_depth}",
        )

    visited: set[UUID] = {employee_id}
    current = employee_id
    for hop in range(1, levels + 1):
        manager_id = hierarchy_store.get_manager_of(current)
        if manager_id is None:
            return ApproverNotFound(
                NotFoundReason.CHAIN_TOO_SHORT,
                f"chain ends at hop {hop} of {levels}",
            )
        if manager_id in visited:
            return ApproverNotFound(
                NotFoundReason.CYCLE_DETECTED,
                f"user {manager_id} revisited at hop {hop}",
            )
        visited.add(manager_id)
        current = manager_id

    return ApproverFound(current, step)
